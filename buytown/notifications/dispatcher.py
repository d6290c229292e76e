import logging

from buytown.notifications.rules import NOTIFICATION_RULES, EVENT_TITLES
from buytown.notifications.channels import Channel
from buytown.notifications.email_handlers import send_user_email, send_admin_email
from buytown.services.notification_service import create_notification
from buytown.models.notifications import RecipientRole
from buytown.notifications.events import OrderEvent

logger = logging.getLogger(__name__)


def dispatch_order_event(
    *,
    event: OrderEvent,
    order,
    user,
    session,
    settings,
    actor: str = "system",
    extra: dict | None = None,
    notify_user: bool = True,
    notify_admin: bool = True,
):
    """
    Central notification dispatcher.

    Handles:
    - customer / admin / delivery person in-app notifications
    - customer email
    - admin email

    Runs after the order transaction has committed. Email failures are
    logged and swallowed.
    """

    rules = NOTIFICATION_RULES.get(event, {})
    extra = extra or {}

    title = extra.get("title") or EVENT_TITLES.get(event, "Order update").format(
        number=order.order_number, actor=actor
    )
    content = extra.get("content") or f"Order {order.order_number} is now {order.status}."

    # -------------------------
    # IN-APP
    # -------------------------
    if notify_user and rules.get(Channel.INAPP_USER) and user:
        create_notification(
            session=session,
            recipient_role=RecipientRole.customer,
            user_id=user.id,
            trigger_source=event.value,
            related_id=order.id,
            title=title,
            content=content,
        )

    if notify_admin and rules.get(Channel.INAPP_ADMIN):
        create_notification(
            session=session,
            recipient_role=RecipientRole.admin,
            user_id=None,
            trigger_source=event.value,
            related_id=order.id,
            title=title,
            content=content,
        )

    if rules.get(Channel.INAPP_DELIVERY) and order.delivery_person_id:
        create_notification(
            session=session,
            recipient_role=RecipientRole.delivery_person,
            user_id=order.delivery_person_id,
            trigger_source=event.value,
            related_id=order.id,
            title=title,
            content=content,
        )

    session.commit()

    context = {
        "title": title,
        "content": content,
        "order": order,
        "store_name": settings.store_name,
        **extra,
    }

    # -------------------------
    # USER EMAIL
    # -------------------------
    if notify_user and rules.get(Channel.EMAIL_USER) and user:
        try:
            send_user_email(
                template="user_emails/order_update.html",
                subject=title,
                user=user,
                settings=settings,
                **context,
            )
        except Exception:
            logger.exception(f"User email failed for order {order.order_number}")

    # -------------------------
    # ADMIN EMAIL
    # -------------------------
    if notify_admin and rules.get(Channel.EMAIL_ADMIN):
        try:
            send_admin_email(
                template="admin_emails/order_update.html",
                subject=title,
                settings=settings,
                **context,
            )
        except Exception:
            logger.exception(f"Admin email failed for order {order.order_number}")
