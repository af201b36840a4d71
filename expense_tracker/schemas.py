"""
Request and response bodies.

JSON uses camelCase keys (``paymentMethod``, ``totalExpenses``); Python
code uses snake_case. Money is validated as Decimal on the way in and
rendered as a JSON number on the way out.
"""

import datetime as dt
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel

from expense_tracker.models import KINDS, PAYMENT_METHODS

Kind = Literal[KINDS]
PaymentMethod = Literal[PAYMENT_METHODS]

Amount = Annotated[
    Decimal,
    Field(gt=0, le=Decimal("999999.99"), decimal_places=2, description="Positive amount, 2 dp"),
]
Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
Password = Annotated[str, StringConstraints(min_length=6, max_length=100)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------- Auth ----------

class RegisterIn(CamelModel):
    name: PersonName
    email: EmailStr
    password: Password


class LoginIn(CamelModel):
    email: EmailStr
    password: Password


class ProfileUpdateIn(CamelModel):
    name: Optional[PersonName] = None
    email: Optional[EmailStr] = None


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: str


class AuthOut(CamelModel):
    user: UserOut
    token: str


# ---------- Categories ----------

class CategoryIn(CamelModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=30)]
    color: Annotated[str, StringConstraints(pattern=r"^#[0-9A-Fa-f]{6}$")] = "#7C6BF2"
    icon: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)] = "ShoppingBag"
    kind: Kind = "expense"


class CategoryOut(CamelModel):
    id: int
    name: str
    color: str
    icon: str
    kind: str
    is_default: bool


class CategoryRef(CamelModel):
    id: int
    name: str
    color: str
    icon: str


# ---------- Records ----------

class RecordIn(CamelModel):
    amount: Amount
    description: Description
    category: int = Field(..., description="Category id")
    payment_method: PaymentMethod = "cash"
    kind: Kind = "expense"
    date: Optional[dt.date] = None


class RecordUpdate(CamelModel):
    amount: Optional[Amount] = None
    description: Optional[Description] = None
    category: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    kind: Optional[Kind] = None
    date: Optional[dt.date] = None


class RecordOut(CamelModel):
    id: int
    amount: float
    description: str
    category: Optional[CategoryRef]
    payment_method: str
    kind: str
    date: dt.date
    created_at: Optional[dt.datetime] = None

    @classmethod
    def from_record(cls, record) -> "RecordOut":
        category = record.category
        return cls(
            id=record.id,
            amount=float(record.amount),
            description=record.description,
            category=CategoryRef.model_validate(category) if category is not None else None,
            payment_method=record.payment_method,
            kind=record.kind,
            date=record.r_date,
            created_at=record.created_at,
        )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class RecordPage(CamelModel):
    data: list[RecordOut]
    pagination: Pagination


# ---------- Notes ----------

class NoteIn(CamelModel):
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
    date: Optional[dt.date] = None


class NoteOut(CamelModel):
    id: int
    content: str
    date: dt.date
    created_at: Optional[dt.datetime] = None

    @classmethod
    def from_note(cls, note) -> "NoteOut":
        return cls(id=note.id, content=note.content, date=note.n_date, created_at=note.created_at)


# ---------- Dashboard ----------

class BreakdownItem(CamelModel):
    category: str
    amount: float
    percentage: int


class SummaryOut(CamelModel):
    total_expenses: float
    total_income: float
    balance: float
    monthly_expenses: float
    category_breakdown: list[BreakdownItem]
    recent_expenses: list[RecordOut]
