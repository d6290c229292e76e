from buytown.notifications.events import OrderEvent
from buytown.notifications.channels import Channel


NOTIFICATION_RULES = {

    OrderEvent.ORDER_PLACED: {
        Channel.INAPP_USER: True,
        Channel.EMAIL_USER: True,
        Channel.INAPP_ADMIN: True,
        Channel.EMAIL_ADMIN: True,
    },

    OrderEvent.ORDER_APPROVED: {
        Channel.INAPP_USER: True,
        Channel.EMAIL_USER: True,
        Channel.INAPP_ADMIN: True,
        Channel.INAPP_DELIVERY: True,
    },

    OrderEvent.ORDER_REJECTED: {
        Channel.INAPP_USER: True,
        Channel.EMAIL_USER: True,
        Channel.INAPP_ADMIN: True,
        Channel.EMAIL_ADMIN: True,
    },

    OrderEvent.DELIVERY_ASSIGNED: {
        Channel.INAPP_ADMIN: True,
        Channel.INAPP_DELIVERY: True,
    },

    OrderEvent.ORDER_COMPLETED: {
        Channel.INAPP_USER: True,
        Channel.EMAIL_USER: True,
        Channel.INAPP_ADMIN: True,
        Channel.EMAIL_ADMIN: True,
    },

    OrderEvent.ORDER_CANCELLED: {
        Channel.INAPP_ADMIN: True,
        Channel.EMAIL_ADMIN: True,
        Channel.INAPP_DELIVERY: True,
    },

    OrderEvent.ORDER_RECEIVED: {
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.PAYMENT_SUCCESS: {
        Channel.INAPP_USER: True,
        Channel.EMAIL_USER: True,
        Channel.INAPP_ADMIN: True,
        Channel.EMAIL_ADMIN: True,
    },

    OrderEvent.PAYMENT_FAILED: {
        Channel.INAPP_USER: True,
        Channel.EMAIL_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.REFUND_PROCESSED: {
        Channel.INAPP_USER: True,
        Channel.EMAIL_USER: True,
        Channel.INAPP_ADMIN: True,
        Channel.EMAIL_ADMIN: True,
    },

}


# Default titles; {number} is the order number, {actor} the acting role.
EVENT_TITLES = {
    OrderEvent.ORDER_PLACED: "Order {number} placed",
    OrderEvent.ORDER_APPROVED: "Order {number} approved",
    OrderEvent.ORDER_REJECTED: "Order {number} rejected by {actor}",
    OrderEvent.DELIVERY_ASSIGNED: "Order {number} assigned for delivery",
    OrderEvent.ORDER_COMPLETED: "Order {number} delivered",
    OrderEvent.ORDER_CANCELLED: "Order {number} cancelled by {actor}",
    OrderEvent.ORDER_RECEIVED: "Order {number} received by customer",
    OrderEvent.PAYMENT_SUCCESS: "Payment received for order {number}",
    OrderEvent.PAYMENT_FAILED: "Payment failed for order {number}",
    OrderEvent.REFUND_PROCESSED: "Refund initiated for order {number}",
}
