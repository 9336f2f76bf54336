"""
SQLAlchemy ORM models for the local SupplyLink store.

Defines the database schema:
- Requirements: Vendor demand lines
- Bids: One standing bid per (supplier, item, state)
- Deals: Closed deals written by the settlement process
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
    }


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=datetime.utcnow,
        nullable=True,
    )


# =============================================================================
# Requirement Model
# =============================================================================


class RequirementRow(Base, TimestampMixin):
    """A vendor's demand line."""

    __tablename__ = "requirements"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    item: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    # Location
    pincode: Mapped[str] = mapped_column(String(20), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")

    __table_args__ = (
        Index("ix_requirement_state_status", "state", "status"),
    )

    def __repr__(self) -> str:
        return f"<RequirementRow(id='{self.id}', item='{self.item}', status='{self.status}')>"


# =============================================================================
# Bid Model
# =============================================================================


class BidRow(Base, TimestampMixin):
    """A supplier's standing bid; resubmission overwrites the price."""

    __tablename__ = "bids"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    item: Mapped[str] = mapped_column(String(200), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(100), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("supplier_id", "item", "state", name="uq_bid_supplier_item_state"),
        Index("ix_bid_state_item", "state", "item"),
    )

    def __repr__(self) -> str:
        return f"<BidRow(id='{self.id}', item='{self.item}', price={self.price})>"


# =============================================================================
# Deal Model
# =============================================================================


class DealRow(Base):
    """A closed deal. Written by the settlement process, read-only here."""

    __tablename__ = "deals"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    item: Mapped[str] = mapped_column(String(200), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    winning_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    winning_supplier_name: Mapped[str] = mapped_column(String(200), nullable=False)
    vendor_names: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    closed_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<DealRow(id='{self.id}', item='{self.item}')>"
