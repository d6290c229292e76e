from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class TaxConfiguration(SQLModel, table=True):
    __tablename__ = "tax_configuration"
    id: Optional[int] = Field(default=None, primary_key=True)
    tax_name: str
    tax_rate: Decimal = Field(max_digits=5, decimal_places=2)  # 18.00 means 18%
    tax_type: str = Field(default="GST")
    is_active: bool = Field(default=True)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
