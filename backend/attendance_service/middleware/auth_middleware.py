from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from attendance_service.config import settings
from attendance_service.services.auth_service import ALGORITHM
from attendance_service.utils.permissions import ALL_ROLES

security = HTTPBearer()


@dataclass
class Principal:
    subject: str
    role: str


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    payload = decode_token(credentials.credentials)
    subject = payload.get("sub")
    role = payload.get("role")
    if subject is None or role not in ALL_ROLES:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return Principal(subject=str(subject), role=role)


def require_roles(*roles: str):
    def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(roles)}",
            )
        return principal
    return checker
