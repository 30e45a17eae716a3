"""Auth Service 도메인 서비스 레이어입니다. 운영자/조회 API용 액세스 토큰을 발급합니다."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from attendance_service.config import settings

ALGORITHM = "HS256"


def create_access_token(subject: str, role: str, expires_minutes: Optional[int] = None) -> str:
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"sub": str(subject), "role": role, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)
