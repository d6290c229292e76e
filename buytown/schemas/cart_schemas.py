from sqlmodel import SQLModel
from typing import Optional
from pydantic import Field


class CartAddRequest(SQLModel):
    product_id: int
    variation_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1)


class CartUpdateRequest(SQLModel):
    quantity: int = Field(ge=1)
