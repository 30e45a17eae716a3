"""Permissions 관련 공용 상수입니다."""

ADMIN = "admin"
MANAGER = "manager"
VIEWER = "viewer"

READ_ROLES = (ADMIN, MANAGER, VIEWER)
ALL_ROLES = (ADMIN, MANAGER, VIEWER)
