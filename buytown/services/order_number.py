import logging
from datetime import date
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session

from buytown.models.order_sequence import OrderSequence

logger = logging.getLogger(__name__)


def financial_year_start(today: date) -> int:
    """Indian financial year runs April to March."""
    return today.year - 1 if today.month < 4 else today.year


def format_order_number(prefix: str, fy_start: int, sequence: int) -> str:
    fy = fy_start % 100
    return f"{prefix}-{fy:02d}-{(fy + 1) % 100:02d}-{sequence:09d}"


class OrderNumberGenerator:
    """Hands out ``BYT-25-26-000000001`` style numbers.

    The counter row for the financial year is incremented with a single
    ``UPDATE ... RETURNING``; the row lock it takes is held until the
    caller's transaction ends, so concurrent checkouts are serialized.
    """

    def __init__(self, session: Session, prefix: str = "BYT", today: Optional[Callable[[], date]] = None):
        self.session = session
        self.prefix = prefix
        self.today = today or date.today

    def generate(self) -> str:
        fy_start = financial_year_start(self.today())
        key = f"{fy_start % 100:02d}"

        self._ensure_counter(key)
        sequence = self.session.execute(
            update(OrderSequence)
            .where(OrderSequence.financial_year == key)
            .values(last_value=OrderSequence.last_value + 1)
            .returning(OrderSequence.last_value)
            .execution_options(synchronize_session=False)
        ).scalar_one()

        number = format_order_number(self.prefix, fy_start, sequence)
        logger.info(f"Generated order number {number}")
        return number

    def _ensure_counter(self, key: str) -> None:
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(OrderSequence.__table__)
        elif dialect == "sqlite":
            stmt = sqlite.insert(OrderSequence.__table__)
        else:
            if self.session.get(OrderSequence, key) is None:
                self.session.add(OrderSequence(financial_year=key, last_value=0))
                self.session.flush()
            return
        self.session.execute(
            stmt.values(financial_year=key, last_value=0).on_conflict_do_nothing(
                index_elements=["financial_year"]
            )
        )
