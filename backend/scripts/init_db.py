"""근태 원장 테이블(time_attendance, time_attendance_raw_event, attendance_ingest_config)을 생성합니다.

Usage:
  python scripts/init_db.py
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from attendance_service.config import settings
from attendance_service.database import Base, engine
import attendance_service.models  # noqa: F401 - 모델 import로 metadata 등록


def init_db(bind=None):
    bind = bind if bind is not None else engine
    print(f"Creating attendance tables on {bind.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(bind=bind)
    names = [table.name for table in Base.metadata.sorted_tables]
    for name in names:
        print(f"  - {name}")
    print(f"Done ({settings.SERVICE_NAME}).")
    return names


if __name__ == "__main__":
    init_db()
