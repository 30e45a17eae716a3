"""Ingest Config Service 도메인 서비스 레이어입니다. 오래된 이벤트 무시 기준을 버전 레코드로 관리합니다."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from attendance_service.models.ingest_config import IngestConfig
from attendance_service.services.ingest_service import IngestOptions

logger = logging.getLogger(__name__)


def get_active_config(db: Session) -> Optional[IngestConfig]:
    return db.query(IngestConfig).order_by(IngestConfig.version.desc()).first()


def create_config_version(
    db: Session,
    *,
    ignore_before: Optional[datetime] = None,
    max_event_age_hours: Optional[int] = None,
    created_by: Optional[str] = None,
    note: Optional[str] = None,
) -> IngestConfig:
    if max_event_age_hours is not None and max_event_age_hours <= 0:
        max_event_age_hours = None
    config = IngestConfig(
        ignore_before=ignore_before,
        max_event_age_hours=max_event_age_hours,
        created_by=created_by,
        note=note,
    )
    db.add(config)
    db.commit()
    db.refresh(config)
    logger.info(
        "[attendance] ingest config v%s: ignore_before=%s max_event_age_hours=%s",
        config.version, config.ignore_before, config.max_event_age_hours,
    )
    return config


def reset_ignore_threshold(
    db: Session,
    *,
    now: Optional[datetime] = None,
    created_by: Optional[str] = None,
    note: Optional[str] = None,
) -> IngestConfig:
    """현재 시각 이전 이벤트를 무시하는 새 버전을 만든다. 기존 최대 경과 시간 설정은 유지한다."""
    current = get_active_config(db)
    return create_config_version(
        db,
        ignore_before=now or datetime.now(timezone.utc),
        max_event_age_hours=current.max_event_age_hours if current else None,
        created_by=created_by,
        note=note or "reset ignore threshold",
    )


def build_options(db: Session, now: Optional[datetime] = None) -> IngestOptions:
    config = get_active_config(db)
    if config is None:
        return IngestOptions(now=now)
    return IngestOptions(
        ignore_before=config.ignore_before,
        max_event_age=timedelta(hours=config.max_event_age_hours) if config.max_event_age_hours else None,
        now=now,
    )
