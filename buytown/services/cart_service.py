import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from buytown.constants.order_status import CartStatus, ProductStatus
from buytown.exceptions import InsufficientStock, NotFoundError, ProductNotFound, ValidationError
from buytown.models.cart import Cart, CartItem
from buytown.models.product import Product, ProductVariation

logger = logging.getLogger(__name__)


class CartService:
    """Pre-checkout basket. Availability is re-checked on every mutation but
    nothing is reserved until checkout."""

    def __init__(self, session: Session):
        self.session = session

    # -------------------------
    # reads
    # -------------------------

    def get_cart(self, user_id: int, create: bool = False) -> Optional[Cart]:
        cart = self.session.exec(select(Cart).where(Cart.user_id == user_id)).first()
        if cart is None and create:
            cart = Cart(user_id=user_id, status=CartStatus.empty.value)
            self.session.add(cart)
            self.session.flush()
        return cart

    def get_items(self, user_id: int) -> List[CartItem]:
        cart = self.get_cart(user_id)
        if not cart:
            return []
        return self.session.exec(
            select(CartItem).where(CartItem.cart_id == cart.id).order_by(CartItem.id)
        ).all()

    def get_summary(self, user_id: int, tax_rate: Decimal = Decimal("0")) -> dict:
        items = self.get_items(user_id)
        subtotal = sum((Decimal(i.total_price) for i in items), Decimal("0"))
        tax = (subtotal * Decimal(tax_rate)).quantize(Decimal("0.01"))
        discount = Decimal("0")
        return {
            "item_count": sum(i.quantity for i in items),
            "subtotal": subtotal,
            "tax_amount": tax,
            "discount_amount": discount,
            "shipping_amount": Decimal("0"),
            "total_amount": subtotal + tax - discount,
        }

    # -------------------------
    # writes
    # -------------------------

    def add_item(self, user_id: int, product_id: int, quantity: int = 1, variation_id: Optional[int] = None) -> CartItem:
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1")

        product = self._get_product(product_id)
        price = self._unit_price(product, variation_id)
        cart = self.get_cart(user_id, create=True)

        existing = self.session.exec(
            select(CartItem).where(
                CartItem.cart_id == cart.id,
                CartItem.product_id == product_id,
                CartItem.variation_id == variation_id,
            )
        ).first()

        new_quantity = quantity + (existing.quantity if existing else 0)
        self._check_available(product, new_quantity)

        if existing:
            item = existing
            item.quantity = new_quantity
            item.price = price
        else:
            item = CartItem(
                cart_id=cart.id,
                product_id=product.id,
                variation_id=variation_id,
                quantity=new_quantity,
                price=price,
                total_price=price * new_quantity,
            )
        item.total_price = price * new_quantity
        self.session.add(item)

        cart.status = CartStatus.pending.value
        cart.updated_at = datetime.utcnow()
        self.session.add(cart)
        self.session.commit()
        self.session.refresh(item)
        return item

    def update_item(self, user_id: int, item_id: int, quantity: int) -> CartItem:
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1")

        item = self._get_own_item(user_id, item_id)
        product = self._get_product(item.product_id)
        self._check_available(product, quantity)

        price = self._unit_price(product, item.variation_id)
        item.quantity = quantity
        item.price = price
        item.total_price = price * quantity
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def remove_item(self, user_id: int, item_id: int) -> None:
        item = self._get_own_item(user_id, item_id)
        cart = self.session.get(Cart, item.cart_id)
        self.session.delete(item)
        self.session.flush()

        remaining = self.session.exec(select(CartItem).where(CartItem.cart_id == cart.id)).first()
        if remaining is None:
            cart.status = CartStatus.empty.value
            cart.updated_at = datetime.utcnow()
            self.session.add(cart)
        self.session.commit()

    def clear(self, user_id: int, commit: bool = True) -> None:
        """Delete every item and reset the cart to ``empty``.

        Checkout passes ``commit=False`` so clearing is part of its transaction.
        """
        cart = self.get_cart(user_id)
        if cart:
            self.session.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
            cart.status = CartStatus.empty.value
            cart.updated_at = datetime.utcnow()
            self.session.add(cart)
        if commit:
            self.session.commit()

    # -------------------------
    # helpers
    # -------------------------

    def _get_product(self, product_id: int) -> Product:
        product = self.session.get(Product, product_id)
        if not product:
            raise ProductNotFound(product_id)
        if product.status == ProductStatus.discontinued.value:
            raise ValidationError(f"{product.name} is no longer sold")
        return product

    def _unit_price(self, product: Product, variation_id: Optional[int]) -> Decimal:
        if variation_id is None:
            return Decimal(product.effective_price)
        variation = self.session.get(ProductVariation, variation_id)
        if not variation or variation.product_id != product.id:
            raise NotFoundError(f"Variation {variation_id} not found for product {product.id}")
        return Decimal(variation.price)

    def _check_available(self, product: Product, quantity: int) -> None:
        available = product.stock - product.held_quantity
        if quantity > available:
            raise InsufficientStock(product.id, quantity, available=available, name=product.name)

    def _get_own_item(self, user_id: int, item_id: int) -> CartItem:
        item = self.session.get(CartItem, item_id)
        cart = self.get_cart(user_id)
        if not item or not cart or item.cart_id != cart.id:
            raise NotFoundError("Cart item not found")
        return item
