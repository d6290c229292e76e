import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlmodel import Session

from buytown.constants.order_status import OrderStatus, PaymentStatus
from buytown.exceptions import EmptyCart
from buytown.models.order import Order
from buytown.models.order_item import OrderItem
from buytown.models.product import Product
from buytown.notifications.events import OrderEvent
from buytown.services.cart_service import CartService
from buytown.services.inventory_service import InventoryLedger
from buytown.services.order_event_service import log_order_event
from buytown.services.order_number import OrderNumberGenerator
from buytown.services.tax_service import TaxService

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass
class CheckoutRequest:
    shipping_address: dict
    billing_address: Optional[dict] = None
    payment_method: str = "cod"
    notes: Optional[str] = None
    delivery_distance: Optional[float] = None
    extra: dict = field(default_factory=dict)


class CheckoutService:
    """Turns a user's cart into an Order in one transaction.

    Stock for every line is reserved before the order is written; a failed
    reservation aborts everything, cart included.
    """

    def __init__(
        self,
        session: Session,
        settings,
        *,
        cart: Optional[CartService] = None,
        ledger: Optional[InventoryLedger] = None,
        tax: Optional[TaxService] = None,
        order_numbers: Optional[OrderNumberGenerator] = None,
        distance_estimator=None,
        notifier=None,
    ):
        self.session = session
        self.settings = settings
        self.cart = cart or CartService(session)
        self.ledger = ledger or InventoryLedger(session)
        self.tax = tax or TaxService(session, settings.default_tax_rate)
        self.order_numbers = order_numbers or OrderNumberGenerator(session, prefix=settings.order_number_prefix)
        self.distance_estimator = distance_estimator
        self.notifier = notifier

    def checkout(self, user_id: int, request: CheckoutRequest) -> Order:
        try:
            order = self._place_order(user_id, request)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(order)
        logger.info(f"Order {order.order_number} created for user {user_id}")

        if self.notifier:
            self.notifier.notify(OrderEvent.ORDER_PLACED, order, actor="customer")
        return order

    def _place_order(self, user_id: int, request: CheckoutRequest) -> Order:
        # 1. cart
        cart_items = self.cart.get_items(user_id)
        if not cart_items:
            raise EmptyCart()

        # 2. summary + reservation, product rows locked in id order
        self.ledger.lock(item.product_id for item in cart_items)
        subtotal = Decimal("0")
        for item in cart_items:
            self.ledger.reserve(item.product_id, item.quantity)
            subtotal += Decimal(item.total_price)

        tax_rate = self.tax.active_rate()
        tax_amount = (subtotal * tax_rate).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        discount_amount = Decimal("0")
        shipping_amount = Decimal("0")
        # delivery charges are added at approval time
        total_amount = subtotal + tax_amount - discount_amount

        # 3. distance
        distance = self._resolve_distance(request)

        # 4-5. order
        order = Order(
            order_number=self.order_numbers.generate(),
            user_id=user_id,
            subtotal=subtotal,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            shipping_amount=shipping_amount,
            total_amount=total_amount,
            status=OrderStatus.awaiting_confirmation.value,
            payment_status=PaymentStatus.pending.value,
            payment_method=request.payment_method,
            shipping_address=request.shipping_address,
            billing_address=request.billing_address or request.shipping_address,
            notes=request.notes,
            delivery_distance=distance,
        )
        self.session.add(order)
        self.session.flush()

        # 6. snapshot items
        for item in cart_items:
            product = self.session.get(Product, item.product_id)
            self.session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    variation_id=item.variation_id,
                    product_name=product.name,
                    price=item.price,
                    quantity=item.quantity,
                    total_price=item.total_price,
                )
            )

        log_order_event(
            self.session,
            order,
            event_type=OrderStatus.awaiting_confirmation.value,
            label="Order placed",
            created_by="customer",
            actor_id=user_id,
            meta={"items": len(cart_items), "total_amount": str(total_amount)},
        )

        # 7. cart
        self.cart.clear(user_id, commit=False)
        return order

    def _resolve_distance(self, request: CheckoutRequest) -> float:
        distance = request.delivery_distance
        if distance is not None and math.isfinite(distance) and distance > 0:
            return float(distance)
        if not self.distance_estimator:
            return 0.0
        try:
            return float(self.distance_estimator.estimate(request.shipping_address))
        except Exception as e:
            logger.warning(f"Distance estimation failed, will be set at approval: {e}")
            return 0.0
