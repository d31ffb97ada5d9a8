import logging
from sqlalchemy.orm import Session
from churchflow.models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    church_id: int,
    user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Adds an audit row to the session; the caller commits."""
    entry = ActivityLog(
        church_id=church_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(entry)
    logger.info(
        "church=%s user=%s %s %s id=%s", church_id, user_id, action, entity_type, entity_id
    )
    return entry
