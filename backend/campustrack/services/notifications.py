from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campustrack.core.exceptions import ErrorCode, ResourceNotFoundError
from campustrack.models.notification import Notification, NotificationType
from campustrack.models.user import User
from campustrack.services.audit import log_activity
from campustrack.services.transactions import transaction

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    *,
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    link: str | None = None,
) -> Notification:
    record = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        link=link,
    )
    db.add(record)
    db.flush()
    return record


def notify_users(
    db: Session,
    *,
    user_ids: list[str] | set[str] | tuple[str, ...],
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    link: str | None = None,
    exclude_user_id: str | None = None,
) -> list[Notification]:
    """Queue one notification per active recipient in the caller's transaction."""
    requested_ids = [item for item in dict.fromkeys(user_ids) if item and item != exclude_user_id]
    if not requested_ids:
        return []

    recipients = list(
        db.execute(
            select(User).where(
                User.id.in_(requested_ids),
                User.is_active.is_(True),
                User.deleted_at.is_(None),
            )
        ).scalars()
    )
    skipped = len(requested_ids) - len(recipients)
    if skipped:
        logger.debug("Skipped %d inactive notification recipients", skipped)

    return [
        create_notification(
            db,
            user_id=recipient.id,
            title=title,
            message=message,
            notification_type=notification_type,
            link=link,
        )
        for recipient in recipients
    ]


def list_notifications(
    db: Session,
    *,
    current_user: User,
    notification_type: NotificationType | None = None,
    is_read: bool | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Notification]:
    query = (
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(Notification.created_at.desc())
    )
    if notification_type:
        query = query.where(Notification.notification_type == notification_type)
    if is_read is not None:
        query = query.where(Notification.is_read == is_read)
    query = query.offset(offset).limit(limit)
    return list(db.execute(query).scalars())


def unread_count(db: Session, *, current_user: User) -> int:
    return db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id,
            Notification.is_read.is_(False),
        )
    ).scalar_one()


def _get_owned_notification(db: Session, *, current_user: User, notification_id: str) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise ResourceNotFoundError("Notification not found")
    return notification


def mark_read(db: Session, *, current_user: User, notification_id: str) -> Notification:
    with transaction(db, failure_message="Failed to update notification", failure_code=ErrorCode.NOTIFICATION_FAILED):
        notification = _get_owned_notification(db, current_user=current_user, notification_id=notification_id)
        notification.is_read = True
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, *, current_user: User) -> int:
    with transaction(db, failure_message="Failed to update notifications", failure_code=ErrorCode.NOTIFICATION_FAILED):
        notifications = list(
            db.execute(
                select(Notification).where(
                    Notification.user_id == current_user.id,
                    Notification.is_read.is_(False),
                )
            ).scalars()
        )
        for notification in notifications:
            notification.is_read = True
        if notifications:
            log_activity(
                db,
                user=current_user,
                action="notification.read_all",
                entity_type="notification",
                details={"count": len(notifications)},
            )
    return len(notifications)


def delete_notification(db: Session, *, current_user: User, notification_id: str) -> dict[str, str]:
    with transaction(db, failure_message="Failed to delete notification", failure_code=ErrorCode.NOTIFICATION_FAILED):
        notification = _get_owned_notification(db, current_user=current_user, notification_id=notification_id)
        db.delete(notification)
    return {"id": notification_id}
