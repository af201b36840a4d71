"""
Dashboard aggregation.

``summarize`` folds one in-memory snapshot of a user's records into the
dashboard figures; ``load_summary`` fetches that snapshot with a single
query so every figure in one response comes from the same read.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from expense_tracker import crud
from expense_tracker.logs import get_logger
from expense_tracker.models import Record

RECENT_LIMIT = 5

ZERO = Decimal("0")

logger = get_logger(__name__)


@dataclass
class CategoryShare:
    category: str
    amount: Decimal
    percentage: int


@dataclass
class Summary:
    total_expenses: Decimal = ZERO
    total_income: Decimal = ZERO
    balance: Decimal = ZERO
    monthly_expenses: Decimal = ZERO
    category_breakdown: List[CategoryShare] = field(default_factory=list)
    recent_expenses: List[Record] = field(default_factory=list)


def month_bounds(today: date) -> Tuple[date, date]:
    """First and last day of ``today``'s calendar month."""
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def percentage_of(amount: Decimal, total: Decimal) -> int:
    """Whole-number share of ``total``, halves rounded up; 0 when total is 0."""
    if total == 0:
        return 0
    return int((amount * 100 / total).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _recency(record: Record):
    return (record.r_date, record.created_at or datetime.min, record.id or 0)


def summarize(records: Iterable[Record], today: date) -> Summary:
    month_start, month_end = month_bounds(today)

    total_expenses = ZERO
    total_income = ZERO
    monthly_expenses = ZERO
    # category key -> [name, amount], in first-seen order
    groups = {}
    expenses = []

    for record in records:
        amount = _as_decimal(record.amount)

        if record.kind == "income":
            total_income += amount
            continue
        if record.kind != "expense":
            logger.warning("summary_unknown_kind", record_id=record.id, kind=record.kind)
            continue

        total_expenses += amount
        if month_start <= record.r_date <= month_end:
            monthly_expenses += amount

        category = record.category
        if category is None:
            # dangling category reference; keep it out of per-category figures
            logger.error(
                "summary_missing_category",
                record_id=record.id,
                category_id=record.category_id,
            )
            continue

        key = category.id if category.id is not None else category.name
        if key in groups:
            groups[key][1] += amount
        else:
            groups[key] = [category.name, amount]
        expenses.append(record)

    breakdown = [
        CategoryShare(category=name, amount=amount, percentage=percentage_of(amount, total_expenses))
        for name, amount in groups.values()
    ]
    recent = sorted(expenses, key=_recency, reverse=True)[:RECENT_LIMIT]

    return Summary(
        total_expenses=total_expenses,
        total_income=total_income,
        balance=total_income - total_expenses,
        monthly_expenses=monthly_expenses,
        category_breakdown=breakdown,
        recent_expenses=recent,
    )


def load_summary(
    db: Session,
    user_id: int,
    today: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Summary:
    records = crud.list_all_records(db, user_id, start_date=start_date, end_date=end_date)
    summary = summarize(records, today)
    logger.debug("summary_computed", user_id=user_id, records=len(records))
    return summary
