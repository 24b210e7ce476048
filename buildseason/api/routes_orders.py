from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from buildseason.api.deps import get_team_context
from buildseason.api.schemas import (
    OrderCreateRequest,
    OrderItemCreateRequest,
    OrderRejectRequest,
    OrderUpdateRequest,
)
from buildseason.api.utils import isoformat
from buildseason.core.errors import ValidationError
from buildseason.core.money import dollars_to_cents, format_cents
from buildseason.core.security import TeamContext
from buildseason.domain.orders import OrderFilter, OrderService, OrderStatus
from buildseason.domain.parts.store import PartStore
from buildseason.persistence.db import get_session
from buildseason.persistence.models import (
    OrderItemModel,
    OrderModel,
    PartModel,
    UserModel,
    VendorModel,
)

router = APIRouter(prefix="/teams/{team_id}/orders", tags=["orders"])


def _service(session: Session, ctx: TeamContext) -> OrderService:
    return OrderService(session, ctx)


def _order_summary(order: OrderModel, vendor_names: dict[str, str] | None = None) -> dict:
    status = OrderStatus(order.status)
    return {
        "id": order.id,
        "teamId": order.team_id,
        "vendorId": order.vendor_id,
        "vendorName": (vendor_names or {}).get(order.vendor_id) if order.vendor_id else None,
        "status": status.value,
        "statusLabel": status.label,
        "totalCents": order.total_cents,
        "total": format_cents(order.total_cents),
        "notes": order.notes,
        "createdById": order.created_by_id,
        "createdAt": isoformat(order.created_at),
        "submittedAt": isoformat(order.submitted_at),
    }


def _order_detail(service: OrderService, order: OrderModel) -> dict:
    session = service.session
    rows = session.execute(
        select(OrderItemModel, PartModel)
        .join(PartModel, PartModel.id == OrderItemModel.part_id)
        .where(OrderItemModel.order_id == order.id)
        .order_by(OrderItemModel.created_at.asc())
    ).all()

    vendor = session.get(VendorModel, order.vendor_id) if order.vendor_id else None
    creator = session.get(UserModel, order.created_by_id)
    status = OrderStatus(order.status)

    detail = _order_summary(order, {vendor.id: vendor.name} if vendor else None)
    detail.update(
        {
            "vendor": {"id": vendor.id, "name": vendor.name, "website": vendor.website} if vendor else None,
            "createdBy": {"id": creator.id, "name": creator.name} if creator else None,
            "rejectionReason": order.rejection_reason,
            "approvedById": order.approved_by_id,
            "approvedAt": isoformat(order.approved_at),
            "orderedAt": isoformat(order.ordered_at),
            "receivedAt": isoformat(order.received_at),
            "updatedAt": isoformat(order.updated_at),
            "items": [
                {
                    "id": item.id,
                    "partId": part.id,
                    "partName": part.name,
                    "sku": part.sku,
                    "quantity": item.quantity,
                    "unitPriceCents": item.unit_price_cents,
                    "unitPrice": format_cents(item.unit_price_cents),
                    "lineTotalCents": item.quantity * item.unit_price_cents,
                    "lineTotal": format_cents(item.quantity * item.unit_price_cents),
                    "quantityOnHand": part.quantity,
                    "exceedsStock": item.quantity > part.quantity,
                }
                for item, part in rows
            ],
            "history": [
                {
                    "action": change.action,
                    "from": change.from_status,
                    "to": change.to_status,
                    "actorId": change.actor_id,
                    "actorRole": change.actor_role,
                    "reason": change.reason,
                    "at": isoformat(change.created_at),
                }
                for change in service.history(order.id)
            ],
            "allowedActions": service.controller.allowed_actions(status, service.ctx.caller_role),
            "canEdit": service.ctx.is_elevated and status is OrderStatus.DRAFT,
        }
    )
    return detail


def _parse_quantity(value: int | str | None) -> int | None:
    if isinstance(value, bool):
        raise ValidationError.for_field("quantity", "Quantity must be a whole number")
    if value is None or value == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValidationError.for_field("quantity", "Quantity must be a whole number") from exc


@router.get("")
def list_orders(
    status: str | None = Query(default=None),
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    listing = service.list_orders(OrderFilter.from_query(status))
    vendor_ids = {o.vendor_id for o in listing.orders if o.vendor_id}
    vendor_names = {}
    if vendor_ids:
        rows = session.execute(select(VendorModel.id, VendorModel.name).where(VendorModel.id.in_(vendor_ids))).all()
        vendor_names = {vendor_id: name for vendor_id, name in rows}
    return {
        "count": len(listing.orders),
        "status": status,
        "orders": [_order_summary(o, vendor_names) for o in listing.orders],
        "statusCounts": listing.status_counts,
        "totalCents": listing.total_cents,
        "total": format_cents(listing.total_cents),
    }


@router.post("", status_code=201)
def create_order(
    body: OrderCreateRequest,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    order = service.create(vendor_id=body.vendor_id, notes=body.notes)
    return _order_detail(service, order)


@router.get("/{order_id}")
def get_order(
    order_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    return _order_detail(service, service.get(order_id))


@router.patch("/{order_id}")
def update_order(
    order_id: str,
    body: OrderUpdateRequest,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    order = service.update(order_id, vendor_id=body.vendor_id, notes=body.notes)
    return _order_detail(service, order)


@router.delete("/{order_id}", status_code=204)
def delete_order(
    order_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    _service(session, ctx).delete_draft(order_id)
    return Response(status_code=204)


@router.post("/{order_id}/items")
def add_order_item(
    order_id: str,
    body: OrderItemCreateRequest,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    quantity = _parse_quantity(body.quantity)

    if body.unit_price is None or body.unit_price == "":
        # Same default the order form uses: the part's catalog price.
        unit_price_cents = None
        if body.part_id:
            unit_price_cents = PartStore(session).get_part(ctx.team_id, body.part_id).unit_price_cents
    else:
        unit_price_cents = dollars_to_cents(body.unit_price)

    item = service.add_item(order_id, body.part_id, quantity, unit_price_cents)
    order = service.get(order_id)
    return {
        "item": {
            "id": item.id,
            "partId": item.part_id,
            "quantity": item.quantity,
            "unitPriceCents": item.unit_price_cents,
            "lineTotalCents": item.quantity * item.unit_price_cents,
        },
        "order": _order_detail(service, order),
    }


@router.delete("/{order_id}/items/{item_id}")
def remove_order_item(
    order_id: str,
    item_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    return _order_detail(service, service.remove_item(order_id, item_id))


@router.post("/{order_id}/submit")
def submit_order(
    order_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    return _order_detail(service, service.submit(order_id))


@router.post("/{order_id}/approve")
def approve_order(
    order_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    return _order_detail(service, service.approve(order_id))


@router.post("/{order_id}/reject")
def reject_order(
    order_id: str,
    body: OrderRejectRequest | None = None,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    return _order_detail(service, service.reject(order_id, reason=body.reason if body else None))


@router.post("/{order_id}/mark-ordered")
def mark_order_ordered(
    order_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    return _order_detail(service, service.mark_ordered(order_id))


@router.post("/{order_id}/receive")
def receive_order(
    order_id: str,
    ctx: TeamContext = Depends(get_team_context),
    session: Session = Depends(get_session),
):
    service = _service(session, ctx)
    return _order_detail(service, service.receive(order_id))
