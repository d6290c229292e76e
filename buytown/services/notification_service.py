import logging

from sqlmodel import Session

from buytown.models.notifications import (
    Notification,
    RecipientRole,
    NotificationChannel,
    NotificationStatus,
)
from buytown.models.user import User

logger = logging.getLogger(__name__)


def create_notification(
    *,
    session: Session,
    recipient_role: RecipientRole,
    user_id: int | None,
    trigger_source: str,
    related_id: int | None,
    title: str,
    content: str,
    channel: NotificationChannel = NotificationChannel.system,
):
    notification = Notification(
        recipient_role=recipient_role,
        user_id=user_id,
        trigger_source=trigger_source,
        related_id=related_id,
        title=title,
        content=content,
        channel=channel,
        status=NotificationStatus.sent,
    )
    session.add(notification)
    session.flush()
    return notification


class NotificationService:
    """Fire-and-forget ``notify(event, order, actor)``.

    Must only be called after the order transaction committed. Any failure
    is logged and swallowed so it never fails the primary operation.
    """

    def __init__(self, session: Session, settings):
        self.session = session
        self.settings = settings

    def notify(self, event, order, actor: str = "system", **extra) -> None:
        from buytown.notifications.dispatcher import dispatch_order_event

        try:
            customer = self.session.get(User, order.user_id)
            dispatch_order_event(
                event=event,
                order=order,
                user=customer,
                session=self.session,
                settings=self.settings,
                actor=actor,
                extra=extra,
            )
        except Exception:
            logger.exception(f"Notification {getattr(event, 'value', event)} failed for order {order.id}")
            self.session.rollback()
