"""SQLAlchemy 엔진/세션 팩토리와 선언적 Base를 정의합니다."""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from attendance_service.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        # 잠금 대기 시간을 제한해 수집 경로가 무한정 멈추지 않도록 한다.
        return {"check_same_thread": False, "timeout": settings.STORAGE_TIMEOUT_SECONDS}
    if url.startswith("postgresql"):
        return {"connect_timeout": int(settings.STORAGE_TIMEOUT_SECONDS)}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
