from sqlmodel import SQLModel, Field


class OrderSequence(SQLModel, table=True):
    """One counter row per financial year (``"25"`` for FY 2025-26)."""
    __tablename__ = "order_sequence"
    financial_year: str = Field(primary_key=True)
    last_value: int = Field(default=0)
