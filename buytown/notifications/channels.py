from enum import Enum


class Channel(str, Enum):
    INAPP_USER = "inapp_user"
    INAPP_ADMIN = "inapp_admin"
    INAPP_DELIVERY = "inapp_delivery"
    EMAIL_USER = "email_user"
    EMAIL_ADMIN = "email_admin"
