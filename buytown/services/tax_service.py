from decimal import Decimal

from sqlmodel import Session, select

from buytown.models.tax import TaxConfiguration


class TaxService:
    def __init__(self, session: Session, default_rate: Decimal = Decimal("0")):
        self.session = session
        self.default_rate = Decimal(default_rate)

    def active_rate(self) -> Decimal:
        """Active tax rate as a fraction (18% -> 0.18)."""
        config = self.session.exec(
            select(TaxConfiguration)
            .where(TaxConfiguration.is_active == True)  # noqa: E712
            .order_by(TaxConfiguration.id.desc())
        ).first()
        if not config:
            return self.default_rate
        return Decimal(config.tax_rate) / Decimal("100")
