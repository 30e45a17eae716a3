"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./time_attendance.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "time-attendance-service"

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 근태 일자 경계는 서버 로캘이 아니라 고정 오프셋(분)으로 계산한다.
    ORG_UTC_OFFSET_MINUTES: int = 7 * 60
    # 오프셋 없는 타임스탬프 해석: utc / local / reject
    NAIVE_TIMESTAMP_POLICY: str = "utc"
    DEDUP_WINDOW_SECONDS: float = 30.0
    # minmax(기본) / hour_of_day(레거시)
    CLASSIFICATION_POLICY: str = "minmax"

    # Storage
    STORAGE_TIMEOUT_SECONDS: float = 10.0
    WRITE_CONFLICT_RETRIES: int = 3
    CACHE_TTL_SECONDS: int = 3600

    # Admin
    REPAIR_CONFIRM_TOKEN: str = "YES_I_WANT_TO_FIX_ALL_RECORDS"
    BATCH_ERROR_REPORT_LIMIT: int = 10

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
