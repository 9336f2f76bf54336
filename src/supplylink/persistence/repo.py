"""
Repository pattern for database operations.

Provides CRUD abstractions over the ORM rows and converts them to the
market domain models, including the bid upsert keyed by
(supplier_id, item, state).
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from supplylink.core.market.models import (
    Bid,
    BidDraft,
    Deal,
    Requirement,
    RequirementDraft,
    RequirementPatch,
    RequirementStatus,
    Unit,
)

from .models import BidRow, DealRow, RequirementRow


def _trim(value: Decimal) -> Decimal:
    """Drop the trailing zeros added by fixed-scale numeric columns."""
    if value == value.to_integral_value():
        return value.quantize(Decimal(1))
    return value.normalize()


# =============================================================================
# Requirement Repository
# =============================================================================


class RequirementRepository:
    """Repository for requirement CRUD operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def to_domain(row: RequirementRow) -> Requirement:
        return Requirement(
            id=row.id,
            owner_id=row.owner_id,
            item=row.item,
            quantity=_trim(row.quantity),
            unit=Unit(row.unit),
            price=_trim(row.price),
            pincode=row.pincode,
            state=row.state,
            status=RequirementStatus(row.status),
            created_at=row.created_at,
        )

    async def get_row(self, requirement_id: str) -> RequirementRow | None:
        """Get requirement row by ID."""
        return await self.session.get(RequirementRow, requirement_id)

    async def get_by_id(self, requirement_id: str) -> Requirement | None:
        row = await self.get_row(requirement_id)
        return self.to_domain(row) if row else None

    async def list_by_state(self, state: str) -> list[Requirement]:
        stmt = (
            select(RequirementRow)
            .where(RequirementRow.state == state)
            .order_by(RequirementRow.created_at, RequirementRow.id)
        )
        return [self.to_domain(row) for row in (await self.session.execute(stmt)).scalars()]

    async def list_by_owner(self, owner_id: str) -> list[Requirement]:
        stmt = (
            select(RequirementRow)
            .where(RequirementRow.owner_id == owner_id)
            .order_by(RequirementRow.created_at.desc(), RequirementRow.id)
        )
        return [self.to_domain(row) for row in (await self.session.execute(stmt)).scalars()]

    async def create(self, draft: RequirementDraft) -> Requirement:
        row = RequirementRow(
            owner_id=draft.owner_id,
            item=draft.item,
            quantity=draft.quantity,
            unit=draft.unit.value,
            price=draft.price,
            pincode=draft.pincode,
            state=draft.state,
            status=RequirementStatus.OPEN.value,
        )
        self.session.add(row)
        await self.session.flush()
        return self.to_domain(row)

    async def update(self, row: RequirementRow, patch: RequirementPatch) -> Requirement:
        for field, value in patch.changes().items():
            setattr(row, field, value.value if isinstance(value, Unit) else value)
        await self.session.flush()
        return self.to_domain(row)

    async def set_status(self, requirement_id: str, status: RequirementStatus) -> bool:
        """Set a requirement's status. Used by the settlement side."""
        row = await self.get_row(requirement_id)
        if row is None:
            return False
        row.status = status.value
        await self.session.flush()
        return True

    async def delete(self, row: RequirementRow) -> None:
        await self.session.delete(row)
        await self.session.flush()

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(RequirementRow.status, func.count()).group_by(RequirementRow.status)
        return {status: count for status, count in (await self.session.execute(stmt)).all()}


# =============================================================================
# Bid Repository
# =============================================================================


class BidRepository:
    """Repository for bids. One row per (supplier_id, item, state)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def to_domain(row: BidRow) -> Bid:
        return Bid(
            id=row.id,
            item=row.item,
            state=row.state,
            supplier_id=row.supplier_id,
            supplier_name=row.supplier_name,
            price=_trim(row.price),
        )

    async def get_by_key(self, supplier_id: str, item: str, state: str) -> BidRow | None:
        stmt = select(BidRow).where(
            BidRow.supplier_id == supplier_id,
            BidRow.item == item,
            BidRow.state == state,
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_by_state(self, state: str) -> list[Bid]:
        stmt = select(BidRow).where(BidRow.state == state).order_by(BidRow.item, BidRow.price)
        return [self.to_domain(row) for row in (await self.session.execute(stmt)).scalars()]

    async def lowest_price(self, item: str, state: str) -> Decimal | None:
        """Current lowest bid for item+state, or None if nobody has bid."""
        stmt = select(func.min(BidRow.price)).where(BidRow.item == item, BidRow.state == state)
        value = (await self.session.execute(stmt)).scalar_one_or_none()
        return _trim(Decimal(str(value))) if value is not None else None

    async def upsert(self, draft: BidDraft) -> tuple[Bid, bool]:
        """Create or replace the supplier's bid.

        Returns:
            Tuple of (bid, created) where created is True if new
        """
        existing = await self.get_by_key(draft.supplier_id, draft.item, draft.state)

        if existing:
            existing.price = draft.price
            existing.supplier_name = draft.supplier_name
            await self.session.flush()
            return self.to_domain(existing), False

        row = BidRow(
            item=draft.item,
            state=draft.state,
            supplier_id=draft.supplier_id,
            supplier_name=draft.supplier_name,
            price=draft.price,
        )
        self.session.add(row)
        await self.session.flush()
        return self.to_domain(row), True

    async def count(self) -> int:
        return (await self.session.execute(select(func.count()).select_from(BidRow))).scalar_one()


# =============================================================================
# Deal Repository
# =============================================================================


class DealRepository:
    """Repository for closed deals."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def to_domain(row: DealRow) -> Deal:
        return Deal(
            id=row.id,
            item=row.item,
            state=row.state,
            unit=row.unit,
            winning_price=_trim(row.winning_price),
            winning_supplier_name=row.winning_supplier_name,
            vendor_names=tuple(row.vendor_names or ()),
            closed_at=row.closed_at,
        )

    async def list_recent(self, limit: int = 50) -> list[Deal]:
        stmt = select(DealRow).order_by(DealRow.closed_at.desc()).limit(limit)
        return [self.to_domain(row) for row in (await self.session.execute(stmt)).scalars()]

    async def count(self) -> int:
        return (await self.session.execute(select(func.count()).select_from(DealRow))).scalar_one()

    async def record(self, deal: Deal) -> Deal:
        """Store a deal produced by the settlement process."""
        row = DealRow(
            item=deal.item,
            state=deal.state,
            unit=deal.unit,
            winning_price=deal.winning_price,
            winning_supplier_name=deal.winning_supplier_name,
            vendor_names=list(deal.vendor_names),
        )
        if deal.id:
            row.id = deal.id
        if deal.closed_at:
            row.closed_at = deal.closed_at
        self.session.add(row)
        await self.session.flush()
        return self.to_domain(row)


