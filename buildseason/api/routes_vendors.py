from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from buildseason.api.deps import get_team_context
from buildseason.api.schemas import VendorCreateRequest
from buildseason.core.security import TeamContext
from buildseason.domain.vendors import create_vendor, list_vendors
from buildseason.persistence.db import get_session
from buildseason.persistence.models import VendorModel

router = APIRouter(prefix="/teams/{team_id}/vendors", tags=["vendors"])


def _vendor_out(vendor: VendorModel) -> dict:
    return {
        "id": vendor.id,
        "name": vendor.name,
        "website": vendor.website,
        "teamId": vendor.team_id,
        "isGlobal": vendor.is_global,
    }


@router.get("")
def get_vendors(
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    vendors = list_vendors(session, ctx.team_id)
    return {"count": len(vendors), "vendors": [_vendor_out(v) for v in vendors]}


@router.post("", status_code=201)
def post_vendor(
    body: VendorCreateRequest,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    return _vendor_out(create_vendor(session, ctx, body.name, body.website))
