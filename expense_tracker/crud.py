from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, joinedload

from expense_tracker.errors import NotFound, ValidationFailure
from expense_tracker.logs import get_logger
from expense_tracker.models import Category, Note, Record

MAX_PAGE_SIZE = 100

logger = get_logger(__name__)


def _check_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValidationFailure.for_field("startDate", "startDate must not be after endDate")


def _resolve_category(db: Session, category_id: int, kind: str) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise ValidationFailure.for_field("category", "Invalid category")
    if category.kind != kind:
        raise ValidationFailure.for_field("category", f"Category is not an {kind} category")
    return category


def _owned_record(db: Session, user_id: int, record_id: int) -> Record:
    # other users' records look exactly like missing ones
    record = db.execute(
        select(Record)
        .options(joinedload(Record.category))
        .where(Record.id == record_id, Record.user_id == user_id)
    ).scalar_one_or_none()
    if record is None:
        raise NotFound("Expense not found")
    return record


def _filtered(
    user_id: int,
    category_id: Optional[int] = None,
    kind: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    conds = [Record.user_id == user_id]
    if category_id is not None:
        conds.append(Record.category_id == category_id)
    if kind is not None:
        conds.append(Record.kind == kind)
    if start_date is not None:
        conds.append(Record.r_date >= start_date)
    if end_date is not None:
        conds.append(Record.r_date <= end_date)
    return conds


def list_records(
    db: Session,
    user_id: int,
    page: int = 1,
    limit: int = 10,
    category_id: Optional[int] = None,
    kind: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[Record], int]:
    """
    One page of the owner's records, newest first.

    Returns ``(records, total)`` where ``total`` counts every match.
    """
    if page < 1:
        raise ValidationFailure.for_field("page", "Page must be greater than 0")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationFailure.for_field("limit", "Limit must be between 1 and 100")
    _check_range(start_date, end_date)

    conds = _filtered(user_id, category_id, kind, start_date, end_date)
    total = db.execute(select(func.count(Record.id)).where(*conds)).scalar_one()

    rows = db.execute(
        select(Record)
        .options(joinedload(Record.category))
        .where(*conds)
        .order_by(desc(Record.r_date), desc(Record.created_at), desc(Record.id))
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    return list(rows), total


def list_all_records(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Record]:
    """Every record of the owner in the range, categories loaded, in one query."""
    _check_range(start_date, end_date)
    rows = db.execute(
        select(Record)
        .options(joinedload(Record.category))
        .where(*_filtered(user_id, start_date=start_date, end_date=end_date))
        .order_by(desc(Record.r_date), desc(Record.created_at), desc(Record.id))
    ).scalars().all()
    return list(rows)


def get_record(db: Session, user_id: int, record_id: int) -> Record:
    return _owned_record(db, user_id, record_id)


def create_record(
    db: Session,
    user_id: int,
    amount: Decimal,
    description: str,
    category_id: int,
    payment_method: str = "cash",
    kind: str = "expense",
    date_value: Optional[date] = None,
) -> Record:
    category = _resolve_category(db, category_id, kind)

    if date_value is None:
        date_value = date.today()

    record = Record(
        user_id=user_id,
        kind=kind,
        category=category,
        amount=amount,
        description=description.strip(),
        payment_method=payment_method,
        r_date=date_value,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("record_created", record_id=record.id, user_id=user_id, kind=kind)
    return record


def update_record(db: Session, user_id: int, record_id: int, changes: dict) -> Record:
    """
    Apply a partial update. ``changes`` holds only the fields the caller
    sent, keyed by API name (amount, description, category,
    payment_method, kind, date).
    """
    record = _owned_record(db, user_id, record_id)

    kind = changes.get("kind") or record.kind
    category_id = changes["category"] if changes.get("category") is not None else record.category_id
    if "category" in changes or "kind" in changes:
        record.category = _resolve_category(db, category_id, kind)
    record.kind = kind

    if changes.get("amount") is not None:
        record.amount = changes["amount"]
    if changes.get("description") is not None:
        record.description = changes["description"].strip()
    if changes.get("payment_method") is not None:
        record.payment_method = changes["payment_method"]
    if changes.get("date") is not None:
        record.r_date = changes["date"]

    db.commit()
    db.refresh(record)
    logger.info("record_updated", record_id=record.id, user_id=user_id, fields=sorted(changes))
    return record


def delete_record(db: Session, user_id: int, record_id: int) -> None:
    record = _owned_record(db, user_id, record_id)
    db.delete(record)
    db.commit()
    logger.info("record_deleted", record_id=record_id, user_id=user_id)


# ---------- Notes ----------

def list_notes(db: Session, user_id: int) -> List[Note]:
    rows = db.execute(
        select(Note)
        .where(Note.user_id == user_id)
        .order_by(desc(Note.n_date), desc(Note.id))
    ).scalars().all()
    return list(rows)


def create_note(db: Session, user_id: int, content: str, date_value: Optional[date] = None) -> Note:
    note = Note(user_id=user_id, content=content.strip(), n_date=date_value or date.today())
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("note_created", note_id=note.id, user_id=user_id)
    return note


def delete_note(db: Session, user_id: int, note_id: int) -> None:
    note = db.execute(
        select(Note).where(Note.id == note_id, Note.user_id == user_id)
    ).scalar_one_or_none()
    if note is None:
        raise NotFound("Note not found")
    db.delete(note)
    db.commit()
    logger.info("note_deleted", note_id=note_id, user_id=user_id)
