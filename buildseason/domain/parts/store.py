from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from buildseason.core.errors import NotFoundError, ValidationError
from buildseason.core.money import dollars_to_cents
from buildseason.core.security import TeamContext, require_elevated
from buildseason.domain.vendors import get_visible_vendor
from buildseason.persistence.db import flush_or_raise
from buildseason.persistence.models import PartModel

logger = logging.getLogger(__name__)

MAX_QUANTITY = 1_000_000


@dataclass(frozen=True)
class PartFilter:
    search: str | None = None
    low_stock: bool = False
    vendor_id: str | None = None

    def apply(self, stmt: Select) -> Select:
        term = (self.search or "").strip().lower()
        if term:
            escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            stmt = stmt.where(
                or_(
                    func.lower(PartModel.name).like(pattern, escape="\\"),
                    func.lower(func.coalesce(PartModel.sku, "")).like(pattern, escape="\\"),
                    func.lower(func.coalesce(PartModel.location, "")).like(pattern, escape="\\"),
                )
            )
        if self.low_stock:
            stmt = stmt.where(PartModel.reorder_point > 0).where(PartModel.quantity <= PartModel.reorder_point)
        if self.vendor_id:
            stmt = stmt.where(PartModel.vendor_id == self.vendor_id)
        return stmt


def is_low_stock(part: PartModel) -> bool:
    return part.reorder_point > 0 and part.quantity <= part.reorder_point


def _clean_text(value: str | None, field: str, max_length: int, required: bool = False) -> str | None:
    cleaned = (value or "").strip() or None
    if cleaned is None and required:
        raise ValidationError.for_field(field, f"{field} is required")
    if cleaned is not None and len(cleaned) > max_length:
        raise ValidationError.for_field(field, f"{field} must be {max_length} characters or less")
    return cleaned


def _non_negative_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError.for_field(field, f"{field} must be a whole number")
    try:
        number = int(value or 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError.for_field(field, f"{field} must be a whole number") from exc
    if number < 0:
        raise ValidationError.for_field(field, f"{field} cannot be negative")
    if number > MAX_QUANTITY:
        raise ValidationError.for_field(field, f"{field} must be {MAX_QUANTITY} or less")
    return number


class PartStore:
    def __init__(self, session: Session):
        self.session = session

    def list_parts(self, team_id: str, part_filter: PartFilter | None = None) -> list[PartModel]:
        stmt = select(PartModel).where(PartModel.team_id == team_id)
        stmt = (part_filter or PartFilter()).apply(stmt).order_by(PartModel.name.asc())
        return list(self.session.scalars(stmt).all())

    def get_part(self, team_id: str, part_id: str) -> PartModel:
        part = self.session.scalar(
            select(PartModel).where(PartModel.id == part_id).where(PartModel.team_id == team_id)
        )
        if part is None:
            raise NotFoundError("Part not found")
        return part

    def create_part(
        self,
        ctx: TeamContext,
        name: str | None,
        sku: str | None = None,
        vendor_id: str | None = None,
        quantity: int | str | None = 0,
        reorder_point: int | str | None = 0,
        location: str | None = None,
        unit_price: str | float | None = None,
        description: str | None = None,
        description_max_length: int = 1000,
    ) -> PartModel:
        require_elevated(ctx, "creating a part")
        if vendor_id:
            get_visible_vendor(self.session, ctx.team_id, vendor_id)

        unit_price_cents = 0 if unit_price in (None, "") else dollars_to_cents(unit_price)
        if unit_price_cents < 0:
            raise ValidationError.for_field("unitPrice", "unitPrice cannot be negative")

        part = PartModel(
            team_id=ctx.team_id,
            name=_clean_text(name, "name", 200, required=True),
            sku=_clean_text(sku, "sku", 100),
            vendor_id=vendor_id or None,
            quantity=_non_negative_int(quantity, "quantity"),
            reorder_point=_non_negative_int(reorder_point, "reorderPoint"),
            location=_clean_text(location, "location", 100),
            unit_price_cents=unit_price_cents,
            description=_clean_text(description, "description", description_max_length),
        )
        self.session.add(part)
        flush_or_raise(self.session, "create part", ctx.team_id)
        logger.info("part created: team_id=%s part_id=%s", ctx.team_id, part.id)
        return part

    def restock(self, part: PartModel, quantity: int) -> PartModel:
        if quantity < 0:
            raise ValueError(f"restock quantity must be non-negative, got {quantity}")
        part.quantity += quantity
        part.updated_at = datetime.now(timezone.utc)
        return part
