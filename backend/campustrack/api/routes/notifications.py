from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campustrack.api.deps import get_current_user, get_db
from campustrack.models.notification import NotificationType
from campustrack.models.user import User
from campustrack.schemas.common import ActionResult, IdOut, success_response
from campustrack.schemas.notification import NotificationOut, UnreadCount
from campustrack.services import notifications as notification_service

router = APIRouter()


@router.get("/notifications", response_model=ActionResult[list[NotificationOut]])
def list_notifications(
    notification_type: NotificationType | None = Query(default=None),
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    notifications = notification_service.list_notifications(
        db,
        current_user=current_user,
        notification_type=notification_type,
        is_read=is_read,
        limit=limit,
        offset=offset,
    )
    return success_response([NotificationOut.model_validate(item) for item in notifications])


@router.get("/notifications/unread-count", response_model=ActionResult[UnreadCount])
def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return success_response(UnreadCount(count=notification_service.unread_count(db, current_user=current_user)))


@router.post("/notifications/read-all", response_model=ActionResult[UnreadCount])
def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    updated = notification_service.mark_all_read(db, current_user=current_user)
    return success_response(UnreadCount(count=0), f"Marked {updated} notifications as read")


@router.post("/notifications/{notification_id}/read", response_model=ActionResult[NotificationOut])
def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    notification = notification_service.mark_read(db, current_user=current_user, notification_id=notification_id)
    return success_response(NotificationOut.model_validate(notification))


@router.delete("/notifications/{notification_id}", response_model=ActionResult[IdOut])
def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    deleted = notification_service.delete_notification(db, current_user=current_user, notification_id=notification_id)
    return success_response(deleted)
