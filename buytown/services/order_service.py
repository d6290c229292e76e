import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlmodel import Session, select

from buytown.constants.order_status import (
    OrderStatus,
    PaymentStatus,
    Role,
    can_transition,
)
from buytown.exceptions import (
    InvalidDeliveryPerson,
    InvalidState,
    OrderNotFound,
    Unauthorized,
    ValidationError,
)
from buytown.models.order import Order
from buytown.models.order_item import OrderItem
from buytown.models.user import User
from buytown.models.vehicle import UserVehicle
from buytown.notifications.events import OrderEvent
from buytown.services.delivery_pricing import DeliveryPricingCalculator
from buytown.services.inventory_service import InventoryLedger
from buytown.services.order_event_service import log_order_event
from buytown.services.role_service import RoleService

logger = logging.getLogger(__name__)


class OrderService:
    """Order state machine.

    awaiting_confirmation -> approved -> completed -> received, with
    rejected / cancelled as terminal exits. Each transition locks the order
    row, checks the current status, applies its inventory effect once per
    item and commits; notifications go out after the commit.
    """

    def __init__(
        self,
        session: Session,
        settings=None,
        *,
        ledger: Optional[InventoryLedger] = None,
        pricing: Optional[DeliveryPricingCalculator] = None,
        roles: Optional[RoleService] = None,
        notifier=None,
    ):
        self.session = session
        self.settings = settings
        self.ledger = ledger or InventoryLedger(session)
        self.pricing = pricing or DeliveryPricingCalculator(session)
        self.roles = roles or RoleService(session)
        self.notifier = notifier

    # -------------------------
    # reads
    # -------------------------

    def get_order(self, order_id: int) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    def get_items(self, order_id: int):
        return self.session.exec(
            select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        ).all()

    # -------------------------
    # admin
    # -------------------------

    def approve(
        self,
        order_id: int,
        vehicle_id: int,
        distance_km,
        delivery_person_id: Optional[int] = None,
        approved_by: Optional[int] = None,
    ) -> Order:
        def apply(order: Order):
            self._require(order, OrderStatus.approved)
            person = self._delivery_person(delivery_person_id) if delivery_person_id else None
            self._apply_delivery(order, vehicle_id, distance_km, person)
            order.status = OrderStatus.approved.value
            order.status_updated_by = approved_by
            log_order_event(
                self.session,
                order,
                event_type=OrderStatus.approved.value,
                label="Order approved",
                created_by="admin",
                actor_id=order.status_updated_by,
                meta={
                    "vehicle_id": vehicle_id,
                    "distance_km": str(distance_km),
                    "delivery_charges": str(order.delivery_charges),
                    "delivery_person_id": delivery_person_id,
                },
            )

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.ORDER_APPROVED, order, actor="admin")
        return order

    def reject(self, order_id: int, reason: str, rejected_by: Optional[int] = None) -> Order:
        actor = self.roles.role_of(rejected_by)

        def apply(order: Order):
            self._require(order, OrderStatus.rejected)
            self._release_items(order.id)
            order.status = OrderStatus.rejected.value
            order.rejection_reason = reason
            order.status_updated_by = rejected_by
            log_order_event(
                self.session,
                order,
                event_type=OrderStatus.rejected.value,
                label=f"Order rejected by {actor}",
                created_by=actor,
                actor_id=order.status_updated_by,
                meta={"reason": reason},
            )

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.ORDER_REJECTED, order, actor=actor, content=f"Reason: {reason}")
        return order

    def assign_delivery_person(self, order_id: int, person_id: int, distance_km, assigned_by: Optional[int] = None) -> Order:
        """Swap the delivery person and reprice; status stays as it is."""

        def apply(order: Order):
            if order.status not in (OrderStatus.awaiting_confirmation.value, OrderStatus.approved.value):
                raise InvalidState(f"Cannot assign a delivery person to a {order.status} order")
            person = self._delivery_person(person_id)
            link = self.session.exec(
                select(UserVehicle).where(UserVehicle.user_id == person.id).order_by(UserVehicle.id)
            ).first()
            if not link:
                raise ValidationError(f"Delivery person {person.id} has no vehicle")
            self._apply_delivery(order, link.vehicle_id, distance_km, person)
            order.status_updated_by = assigned_by
            log_order_event(
                self.session,
                order,
                event_type="delivery_assigned",
                label=f"Assigned to {person.full_name}",
                created_by="admin",
                actor_id=order.status_updated_by,
                meta={"delivery_person_id": person.id, "vehicle_id": link.vehicle_id},
            )

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.DELIVERY_ASSIGNED, order, actor="admin")
        return order

    def mark_completed(self, order_id: int, completed_by: Optional[int] = None) -> Order:
        """Admin completion when no delivery person is involved."""

        def apply(order: Order):
            self._require(order, OrderStatus.completed)
            self._complete(order, completed_by, actor="admin")

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.ORDER_COMPLETED, order, actor="admin")
        return order

    # -------------------------
    # delivery person
    # -------------------------

    def complete_by_delivery_person(self, order_id: int, person_id: int) -> Order:
        def apply(order: Order):
            self._require_assigned(order, person_id)
            if order.status != OrderStatus.approved.value:
                raise InvalidState(f"Only approved orders can be completed, order is {order.status}")
            self._complete(order, person_id, actor=Role.delivery_person.value)

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.ORDER_COMPLETED, order, actor=Role.delivery_person.value)
        return order

    def reject_by_delivery_person(self, order_id: int, person_id: int, reason: str) -> Order:
        def apply(order: Order):
            self._require_assigned(order, person_id)
            if order.status != OrderStatus.approved.value:
                raise InvalidState(f"Only approved orders can be rejected on delivery, order is {order.status}")
            # goods never left, only the reservation goes back
            self._release_items(order.id)
            order.status = OrderStatus.rejected.value
            order.rejection_reason = reason
            order.status_updated_by = person_id
            log_order_event(
                self.session,
                order,
                event_type=OrderStatus.rejected.value,
                label="Order rejected by delivery person",
                created_by=Role.delivery_person.value,
                actor_id=order.status_updated_by,
                meta={"reason": reason},
            )

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.ORDER_REJECTED, order, actor="delivery person", content=f"Reason: {reason}")
        return order

    # -------------------------
    # customer
    # -------------------------

    def cancel_by_customer(self, order_id: int, customer_id: int, reason: Optional[str] = None) -> Order:
        def apply(order: Order):
            self._require_owner(order, customer_id)
            self._require(order, OrderStatus.cancelled)
            self._release_items(order.id)
            order.status = OrderStatus.cancelled.value
            order.payment_status = PaymentStatus.cancelled.value
            order.cancellation_reason = reason
            order.status_updated_by = customer_id
            log_order_event(
                self.session,
                order,
                event_type=OrderStatus.cancelled.value,
                label="Order cancelled by customer",
                created_by=Role.customer.value,
                actor_id=order.status_updated_by,
                meta={"reason": reason},
            )

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.ORDER_CANCELLED, order, actor="customer", content=f"Reason: {reason or 'not given'}")
        return order

    def mark_received_by_customer(self, order_id: int, customer_id: int) -> Order:
        def apply(order: Order):
            self._require_owner(order, customer_id)
            self._require(order, OrderStatus.received)
            order.status = OrderStatus.received.value
            order.status_updated_by = customer_id
            log_order_event(
                self.session,
                order,
                event_type=OrderStatus.received.value,
                label="Order received by customer",
                created_by=Role.customer.value,
                actor_id=order.status_updated_by,
            )

        order = self._transition(order_id, apply)
        self._notify(OrderEvent.ORDER_RECEIVED, order, actor="customer")
        return order

    # -------------------------
    # shared by payment reconciliation
    # -------------------------

    def cancel_for_payment_failure(self, order: Order) -> bool:
        """Cancel a still-open order whose payment failed. Caller commits."""
        if not can_transition(order.status, OrderStatus.cancelled.value):
            return False
        self._release_items(order.id)
        order.status = OrderStatus.cancelled.value
        order.cancellation_reason = "Payment failed"
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        log_order_event(
            self.session,
            order,
            event_type=OrderStatus.cancelled.value,
            label="Order cancelled after failed payment",
            created_by="gateway",
        )
        return True

    def lock_order(self, order_id: int) -> Order:
        order = self.session.exec(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if not order:
            raise OrderNotFound(order_id)
        return order

    # -------------------------
    # helpers
    # -------------------------

    def _transition(self, order_id: int, apply) -> Order:
        try:
            order = self.lock_order(order_id)
            before = order.status
            apply(order)
            order.updated_at = datetime.utcnow()
            self.session.add(order)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(order)
        logger.info(f"Order {order.order_number}: {before} -> {order.status}")
        return order

    def _require(self, order: Order, target: OrderStatus) -> None:
        if not can_transition(order.status, target.value):
            raise InvalidState(f"Order {order.order_number} is {order.status}, cannot move to {target.value}")

    def _require_owner(self, order: Order, customer_id: int) -> None:
        if order.user_id != customer_id:
            raise Unauthorized("Order does not belong to this customer")

    def _require_assigned(self, order: Order, person_id: int) -> None:
        if order.delivery_person_id != person_id:
            raise Unauthorized("Order is not assigned to this delivery person")

    def _delivery_person(self, user_id: int) -> User:
        if not self.roles.has_role(user_id, Role.delivery_person.value):
            raise InvalidDeliveryPerson(user_id)
        return self.session.get(User, user_id)

    def _apply_delivery(self, order: Order, vehicle_id: int, distance_km, person: Optional[User]) -> None:
        charge = self.pricing.calculate(vehicle_id, distance_km)
        order.vehicle_id = charge.vehicle_id
        order.delivery_vehicle = charge.vehicle_type
        order.delivery_distance = float(charge.distance_km)
        order.delivery_charges = charge.total_charge
        if person is not None:
            order.delivery_person_id = person.id
            order.delivery_driver = person.full_name
        order.total_amount = (
            Decimal(order.subtotal)
            + Decimal(order.shipping_amount)
            + Decimal(order.tax_amount)
            - Decimal(order.discount_amount)
            + charge.total_charge
        )

    def _items_by_product(self, order_id: int) -> Iterable:
        totals = {}
        for item in self.get_items(order_id):
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        self.ledger.lock(totals.keys())
        return sorted(totals.items())

    def _release_items(self, order_id: int) -> None:
        for product_id, qty in self._items_by_product(order_id):
            self.ledger.release(product_id, qty)

    def _complete(self, order: Order, actor_id: Optional[int], actor: str) -> None:
        for product_id, qty in self._items_by_product(order.id):
            self.ledger.commit(product_id, qty)
        order.status = OrderStatus.completed.value
        order.status_updated_by = actor_id
        log_order_event(
            self.session,
            order,
            event_type=OrderStatus.completed.value,
            label=f"Order completed by {actor.replace('_', ' ')}",
            created_by=actor,
            actor_id=order.status_updated_by,
        )

    def _notify(self, event: OrderEvent, order: Order, actor: str, **extra) -> None:
        if self.notifier:
            self.notifier.notify(event, order, actor=actor, **extra)
