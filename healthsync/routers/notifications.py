from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from healthsync.database import get_db, unit_of_work
from healthsync.models.user import User
from healthsync.models.notification import Notification
from healthsync.core.errors import NotFound
from healthsync.core.security import get_current_active_user
from healthsync.schemas import NotificationResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    notifications = db.query(Notification).filter(
        Notification.user_id == current_user.id
    ).order_by(Notification.created_at.desc(), Notification.id.desc()).all()
    return notifications


@router.patch("/read-all")
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    with unit_of_work(db):
        db.query(Notification).filter(
            Notification.user_id == current_user.id,
            Notification.is_read == False  # noqa: E712
        ).update({"is_read": True})
    return {"message": "All notifications marked as read"}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()

    if not notification:
        raise NotFound("Notification not found")

    with unit_of_work(db):
        notification.is_read = True
    db.refresh(notification)
    return notification
