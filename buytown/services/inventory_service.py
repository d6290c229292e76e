import logging
from datetime import datetime

from sqlalchemy import case, update
from sqlmodel import Session, select

from buytown.constants.order_status import ProductStatus
from buytown.exceptions import InsufficientStock, ProductNotFound, ValidationError
from buytown.models.product import Product

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Single writer of ``Product.stock`` / ``Product.held_quantity``.

    Every mutation is one conditional UPDATE whose WHERE clause carries the
    invariant (``held_quantity <= stock``), followed by the status
    recomputation. Nothing here commits; the caller owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def availability(self, product_id: int) -> int:
        product = self._get(product_id)
        return product.stock - product.held_quantity

    def reserve(self, product_id: int, qty: int) -> None:
        self._check_qty(qty)
        result = self._execute(
            update(Product)
            .where(Product.id == product_id)
            .where(Product.held_quantity + qty <= Product.stock)
            .values(
                held_quantity=Product.held_quantity + qty,
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            product = self._get(product_id)
            raise InsufficientStock(
                product_id,
                qty,
                available=product.stock - product.held_quantity,
                name=product.name,
            )
        self._recompute_status(product_id)
        logger.info(f"Reserved {qty} of product {product_id}")

    def release(self, product_id: int, qty: int) -> None:
        self._check_qty(qty)
        result = self._execute(
            update(Product)
            .where(Product.id == product_id)
            .values(
                held_quantity=case(
                    (Product.held_quantity >= qty, Product.held_quantity - qty),
                    else_=0,
                ),
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            raise ProductNotFound(product_id)
        self._recompute_status(product_id)
        logger.info(f"Released {qty} held units of product {product_id}")

    def commit(self, product_id: int, qty: int) -> None:
        """Consume a reservation: physical decrement plus release."""
        self._check_qty(qty)
        result = self._execute(
            update(Product)
            .where(Product.id == product_id)
            .where(Product.stock >= qty)
            .values(
                stock=Product.stock - qty,
                held_quantity=case(
                    (Product.held_quantity >= qty, Product.held_quantity - qty),
                    else_=0,
                ),
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            product = self._get(product_id)
            raise InsufficientStock(product_id, qty, available=product.stock, name=product.name)
        self._recompute_status(product_id)
        logger.info(f"Committed {qty} units of product {product_id}")

    def lock(self, product_ids):
        """SELECT ... FOR UPDATE in id order so concurrent orders cannot deadlock."""
        ids = sorted(set(product_ids))
        if not ids:
            return []
        return self.session.exec(
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
        ).all()

    # -------------------------
    # helpers
    # -------------------------

    def _execute(self, statement):
        return self.session.execute(
            statement.execution_options(synchronize_session=False)
        )

    def _recompute_status(self, product_id: int) -> None:
        self._execute(
            update(Product)
            .where(Product.id == product_id)
            .where(Product.status != ProductStatus.discontinued.value)
            .values(
                status=case(
                    (Product.stock <= 0, ProductStatus.out_of_stock.value),
                    else_=ProductStatus.active.value,
                )
            )
        )
        # Core UPDATEs bypass the identity map
        product = self.session.get(Product, product_id)
        if product is not None:
            self.session.refresh(product)

    def _get(self, product_id: int) -> Product:
        product = self.session.get(Product, product_id, populate_existing=True)
        if not product:
            raise ProductNotFound(product_id)
        return product

    @staticmethod
    def _check_qty(qty: int) -> None:
        if qty is None or qty <= 0:
            raise ValidationError(f"Quantity must be positive, got {qty}")
