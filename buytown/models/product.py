from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from buytown.constants.order_status import ProductStatus


class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    sku_code: Optional[str] = None

    price: Decimal = Field(max_digits=10, decimal_places=2)
    selling_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    # inventory: only InventoryLedger writes these two columns
    stock: int = Field(default=0)
    held_quantity: int = Field(default=0)
    status: int = Field(default=ProductStatus.active.value)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def available_quantity(self) -> int:
        return self.stock - self.held_quantity

    @property
    def effective_price(self) -> Decimal:
        return self.selling_price if self.selling_price is not None else self.price


class ProductVariation(SQLModel, table=True):
    __tablename__ = "product_variation"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    name: str
    price: Decimal = Field(max_digits=10, decimal_places=2)
