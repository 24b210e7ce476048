from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from buildseason.api.deps import get_team_context
from buildseason.api.schemas import PartCreateRequest
from buildseason.api.utils import isoformat, parse_bool
from buildseason.core.config import get_settings
from buildseason.core.money import format_cents
from buildseason.core.security import TeamContext
from buildseason.domain.parts.store import PartFilter, PartStore, is_low_stock
from buildseason.persistence.db import get_session
from buildseason.persistence.models import PartModel

router = APIRouter(prefix="/teams/{team_id}/parts", tags=["parts"])


def _part_out(part: PartModel) -> dict:
    return {
        "id": part.id,
        "teamId": part.team_id,
        "name": part.name,
        "sku": part.sku,
        "vendorId": part.vendor_id,
        "quantity": part.quantity,
        "reorderPoint": part.reorder_point,
        "lowStock": is_low_stock(part),
        "location": part.location,
        "unitPriceCents": part.unit_price_cents,
        "unitPrice": format_cents(part.unit_price_cents),
        "description": part.description,
        "updatedAt": isoformat(part.updated_at),
    }


@router.get("")
def list_parts(
    search: str | None = Query(default=None, max_length=200),
    low_stock: str | None = Query(default=None, alias="lowStock"),
    vendor_id: str | None = Query(default=None, alias="vendorId"),
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    part_filter = PartFilter(search=search, low_stock=parse_bool(low_stock), vendor_id=vendor_id)
    parts = PartStore(session).list_parts(ctx.team_id, part_filter)
    return {
        "count": len(parts),
        "lowStockCount": sum(1 for p in parts if is_low_stock(p)),
        "parts": [_part_out(p) for p in parts],
    }


@router.post("", status_code=201)
def create_part(
    body: PartCreateRequest,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    part = PartStore(session).create_part(
        ctx,
        name=body.name,
        sku=body.sku,
        vendor_id=body.vendor_id,
        quantity=body.quantity,
        reorder_point=body.reorder_point,
        location=body.location,
        unit_price=body.unit_price,
        description=body.description,
        description_max_length=get_settings().part_description_max_length,
    )
    return _part_out(part)


@router.get("/{part_id}")
def get_part(
    part_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    return _part_out(PartStore(session).get_part(ctx.team_id, part_id))
