from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from buildseason.core.errors import NotFoundError, ValidationError
from buildseason.core.security import TeamContext, require_elevated
from buildseason.persistence.db import flush_or_raise
from buildseason.persistence.models import VendorModel

logger = logging.getLogger(__name__)


def _visible_to(team_id: str):
    return or_(VendorModel.is_global.is_(True), VendorModel.team_id == team_id)


def list_vendors(session: Session, team_id: str) -> list[VendorModel]:
    stmt = select(VendorModel).where(_visible_to(team_id)).order_by(VendorModel.name.asc())
    return list(session.scalars(stmt).all())


def get_visible_vendor(session: Session, team_id: str, vendor_id: str) -> VendorModel:
    vendor = session.scalar(select(VendorModel).where(VendorModel.id == vendor_id).where(_visible_to(team_id)))
    if vendor is None:
        raise NotFoundError("Vendor not found")
    return vendor


def create_vendor(session: Session, ctx: TeamContext, name: str | None, website: str | None = None) -> VendorModel:
    require_elevated(ctx, "creating a vendor")
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError.for_field("name", "Vendor name is required")
    if len(cleaned) > 200:
        raise ValidationError.for_field("name", "Vendor name must be 200 characters or less")

    vendor = VendorModel(
        name=cleaned,
        website=(website or "").strip() or None,
        team_id=ctx.team_id,
        is_global=False,
    )
    session.add(vendor)
    flush_or_raise(session, "create vendor", ctx.team_id)
    logger.info("vendor created: team_id=%s vendor_id=%s", ctx.team_id, vendor.id)
    return vendor
