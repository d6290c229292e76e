from sqlmodel import SQLModel, Field , Relationship
from typing import Optional , TYPE_CHECKING
from decimal import Decimal

if TYPE_CHECKING:
    from buytown.models.order import Order


class OrderItem(SQLModel, table=True):
    """Price snapshot taken at checkout. Never recalculated."""
    __tablename__ = "order_item"
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    variation_id: Optional[int] = Field(default=None, foreign_key="product_variation.id")

    product_name: str
    price: Decimal = Field(max_digits=10, decimal_places=2)
    quantity: int
    total_price: Decimal = Field(max_digits=10, decimal_places=2)

    order: Optional["Order"] = Relationship(back_populates="items")
