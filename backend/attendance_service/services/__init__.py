"""서비스 레이어 패키지 초기화 모듈입니다."""

from attendance_service.services import (
    auth_service,
    cache_service,
    publish_service,
    day_record_service,
    ingest_service,
    ingest_config_service,
    repair_service,
)
