from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal


class RefundIn(BaseModel):
    amount: Optional[Decimal] = Field(default=None, gt=0)
    reason: str = ""
