from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# Integer on SQLite so the primary key aliases ROWID and autoincrements.
_PK = BigInteger().with_variant(Integer(), "sqlite")


# ---------------------------
# Reference: fb_merchants
# ---------------------------


class FbMerchant(Base):
    __tablename__ = "fb_merchants"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    # First-seen raw form, trimmed. Never rewritten by later ingestions.
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Canonical uppercase single token; merchant identity for deduplication.
    normalized_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Core: fb_transactions
# ---------------------------


class FbTransaction(Base):
    __tablename__ = "fb_transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    # Natural key from the legacy feed; upsert target.
    external_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    # Verbatim pre-sanitized description kept for audit.
    raw_description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(CHAR(3), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    merchant_id: Mapped[int | None] = mapped_column(
        _PK,
        ForeignKey("fb_merchants.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_fb_transactions_category", "category"),
        Index("ix_fb_transactions_merchant_id", "merchant_id"),
        Index("ix_fb_transactions_date", "date"),
    )


__all__ = [
    "Base",
    "FbMerchant",
    "FbTransaction",
]
