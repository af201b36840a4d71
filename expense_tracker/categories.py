"""
Category registry.

Categories are global (not user-scoped) and immutable once written. Each
kind is seeded with a fixed default list the first time it is read while
empty. Whether a kind still needs seeding is decided by looking at the
table, never by process state, so several server instances agree.
"""

from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expense_tracker.errors import DuplicateKey, NotFound, ValidationFailure
from expense_tracker.logs import get_logger
from expense_tracker.models import KINDS, Category

logger = get_logger(__name__)

# (name, color, icon)
DEFAULT_CATEGORIES = {
    "expense": (
        ("Food & Dining", "#FF6B6B", "UtensilsCrossed"),
        ("Transportation", "#4ECDC4", "Car"),
        ("Shopping", "#45B7D1", "ShoppingBag"),
        ("Entertainment", "#FFA07A", "Film"),
        ("Bills & Utilities", "#98D8C8", "Receipt"),
        ("Healthcare", "#F7DC6F", "Heart"),
        ("Education", "#BB8FCE", "GraduationCap"),
        ("Travel", "#85C1E9", "Plane"),
        ("Personal Care", "#F8C471", "Sparkles"),
        ("Other", "#D5DBDB", "MoreHorizontal"),
    ),
    "income": (
        ("Salary", "#2ECC71", "Briefcase"),
        ("Freelance", "#3498DB", "Laptop"),
        ("Investments", "#9B59B6", "TrendingUp"),
        ("Rental", "#E67E22", "Home"),
        ("Other", "#95A5A6", "MoreHorizontal"),
    ),
}


def _check_kind(kind: str) -> str:
    if kind not in KINDS:
        raise ValidationFailure.for_field("kind", "kind must be expense or income")
    return kind


def _has_any(db: Session, kind: str) -> bool:
    return db.execute(select(Category.id).where(Category.kind == kind).limit(1)).first() is not None


def _seed_kind(db: Session, kind: str) -> int:
    rows = [
        Category(name=name, color=color, icon=icon, kind=kind, is_default=True)
        for name, color, icon in DEFAULT_CATEGORIES[kind]
    ]
    db.add_all(rows)
    try:
        db.commit()
    except IntegrityError:
        # another instance seeded the same kind first
        db.rollback()
        logger.info("categories_seed_raced", kind=kind)
        return 0
    logger.info("categories_seeded", kind=kind, count=len(rows))
    return len(rows)


def list_categories(db: Session, kind: Optional[str] = None) -> List[Category]:
    """
    Return the categories of ``kind`` sorted by name, seeding defaults
    first if that kind has none. With no kind, both kinds are returned.
    """
    kinds = KINDS if kind is None else (_check_kind(kind),)
    for k in kinds:
        if not _has_any(db, k):
            _seed_kind(db, k)

    q = select(Category).where(Category.kind.in_(kinds)).order_by(Category.name, Category.kind)
    return list(db.execute(q).scalars().all())


def get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    return category


def create_category(db: Session, name: str, color: str, icon: str, kind: str = "expense") -> Category:
    _check_kind(kind)
    name = name.strip()
    if not name:
        raise ValidationFailure.for_field("name", "Category name is required")

    clash = db.execute(
        select(Category.id).where(Category.name == name, Category.kind == kind)
    ).first()
    if clash:
        raise DuplicateKey(f"A {kind} category named '{name}' already exists")

    category = Category(name=name, color=color.upper(), icon=icon, kind=kind, is_default=False)
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey(f"A {kind} category named '{name}' already exists")
    db.refresh(category)
    logger.info("category_created", category_id=category.id, kind=kind)
    return category


def seed_categories(db: Session, kinds: Optional[Iterable[str]] = None) -> List[Category]:
    """Explicitly seed every requested kind that is still empty."""
    kinds = tuple(KINDS if kinds is None else (_check_kind(k) for k in kinds))
    empty = [k for k in kinds if not _has_any(db, k)]
    if not empty:
        raise ValidationFailure("Categories already seeded")

    for k in empty:
        _seed_kind(db, k)
    q = select(Category).where(Category.kind.in_(empty)).order_by(Category.name, Category.kind)
    return list(db.execute(q).scalars().all())
