from fastapi import Depends
from sqlmodel import Session

from buytown.config import Settings, settings as app_settings
from buytown.database import get_session
from buytown.services.cart_service import CartService
from buytown.services.checkout_service import CheckoutService
from buytown.services.delivery_pricing import DeliveryPricingCalculator
from buytown.services.distance_service import HashDistanceEstimator
from buytown.services.gateways import GATEWAYS
from buytown.services.notification_service import NotificationService
from buytown.services.order_service import OrderService
from buytown.services.payment_service import PaymentService


def get_settings() -> Settings:
    return app_settings


def get_notifier(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> NotificationService:
    return NotificationService(session, settings)


def get_gateways(settings: Settings = Depends(get_settings)):
    return {name: cls.from_settings(settings) for name, cls in GATEWAYS.items()}


def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)


def get_pricing(session: Session = Depends(get_session)) -> DeliveryPricingCalculator:
    return DeliveryPricingCalculator(session)


def get_checkout_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    notifier: NotificationService = Depends(get_notifier),
) -> CheckoutService:
    return CheckoutService(
        session,
        settings,
        distance_estimator=HashDistanceEstimator(settings.delivery_radius_km),
        notifier=notifier,
    )


def get_order_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    notifier: NotificationService = Depends(get_notifier),
) -> OrderService:
    return OrderService(session, settings, notifier=notifier)


def get_payment_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    notifier: NotificationService = Depends(get_notifier),
    gateways=Depends(get_gateways),
) -> PaymentService:
    return PaymentService(
        session,
        gateways,
        orders=OrderService(session, settings, notifier=notifier),
        notifier=notifier,
        currency=settings.currency,
    )
