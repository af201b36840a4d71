from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from expense_tracker.db import Base

KINDS = ("expense", "income")
PAYMENT_METHODS = ("cash", "card", "upi", "gpay", "phonepe", "bank_transfer", "other")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(10), nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    records = relationship("Record", back_populates="user", cascade="all, delete-orphan")
    notes = relationship("Note", back_populates="user", cascade="all, delete-orphan")
    tokens = relationship("AuthToken", back_populates="user", cascade="all, delete-orphan")


class AuthToken(Base):
    __tablename__ = "auth_tokens"

    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="tokens")


class Category(Base):
    __tablename__ = "categories"
    # "Other" exists for both kinds, so names are unique per kind
    __table_args__ = (UniqueConstraint("name", "kind", name="uq_categories_name_kind"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(30), nullable=False, index=True)
    color = Column(String(7), nullable=False, default="#7C6BF2")
    icon = Column(String(50), nullable=False, default="ShoppingBag")

    # kind: "expense" / "income"
    kind = Column(String(10), nullable=False, index=True)
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Record(Base):
    __tablename__ = "records"
    __table_args__ = (
        Index("ix_records_user_date", "user_id", "r_date"),
        Index("ix_records_user_category", "user_id", "category_id"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # kind: "expense" / "income"
    kind = Column(String(10), nullable=False, default="expense", index=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(200), nullable=False)
    payment_method = Column(String(20), nullable=False, default="cash")

    # date the money moved, not when the row was written
    r_date = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="records")
    category = relationship("Category")


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(String(500), nullable=False)
    n_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="notes")
