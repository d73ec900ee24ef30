import logging
from typing import Optional

from sqlalchemy.orm import Session

from healthsync.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    user_id: int,
    type: NotificationType,
    message: str,
    related_id: Optional[int] = None,
) -> Notification:
    """Queue a notification in the caller's unit of work."""
    notification = Notification(user_id=user_id, type=type, message=message, related_id=related_id)
    db.add(notification)
    logger.debug("notification queued for user %s: %s", user_id, type.value)
    return notification


def doctor_label(doctor) -> str:
    return f"Dr. {doctor.name}"
