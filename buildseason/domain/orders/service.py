from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import Select, desc, func, select
from sqlalchemy.orm import Session

from buildseason.core.config import Settings, get_settings
from buildseason.core.errors import InvalidStateError, NotFoundError, ValidationError
from buildseason.core.money import MAX_UNIT_PRICE_CENTS
from buildseason.core.security import TeamContext, require_elevated
from buildseason.domain.orders.aggregates import OrderAggregate
from buildseason.domain.orders.lifecycle import (
    OrderLifecycleController,
    OrderLifecyclePolicy,
    OrderStatus,
    OrderTransition,
)
from buildseason.domain.parts.store import MAX_QUANTITY, PartStore
from buildseason.domain.vendors import get_visible_vendor
from buildseason.persistence.db import flush_or_raise
from buildseason.persistence.models import OrderItemModel, OrderModel, OrderStatusChangeModel

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Please fill in all required fields."
NOT_EDITABLE_MESSAGE = "Order not found or not editable."


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrderFilter:
    status: OrderStatus | None = None

    @classmethod
    def from_query(cls, status: str | None) -> "OrderFilter":
        if status is None or not status.strip():
            return cls()
        return cls(status=OrderStatus.parse(status.strip().lower()))

    def apply(self, stmt: Select) -> Select:
        if self.status is not None:
            stmt = stmt.where(OrderModel.status == self.status.value)
        return stmt


@dataclass
class OrderListing:
    orders: list[OrderModel]
    status_counts: dict[str, int] = field(default_factory=dict)
    total_cents: int = 0


def recompute_total(session: Session, order: OrderModel) -> int:
    """Set ``order.total_cents`` from the flushed items and return it."""
    rows = session.scalars(select(OrderItemModel).where(OrderItemModel.order_id == order.id)).all()
    order.total_cents = OrderAggregate.from_rows(order.id, order.status, rows).total_cents
    return order.total_cents


class OrderService:
    def __init__(
        self,
        session: Session,
        ctx: TeamContext,
        settings: Settings | None = None,
        controller: OrderLifecycleController | None = None,
    ):
        self.session = session
        self.ctx = ctx
        self.settings = settings or get_settings()
        self.controller = controller or OrderLifecycleController(OrderLifecyclePolicy.from_settings(self.settings))
        self.parts = PartStore(session)

    def _flush(self, operation: str) -> None:
        flush_or_raise(self.session, operation, self.ctx.team_id)

    def _clean_notes(self, notes: str | None) -> str | None:
        cleaned = (notes or "").strip() or None
        limit = self.settings.notes_max_length
        if cleaned is not None and len(cleaned) > limit:
            raise ValidationError.for_field("notes", f"Notes must be {limit} characters or less")
        return cleaned

    def _check_vendor(self, vendor_id: str | None) -> str | None:
        if not vendor_id:
            return None
        return get_visible_vendor(self.session, self.ctx.team_id, vendor_id).id

    def _load(self, order_id: str, for_update: bool = False) -> OrderModel:
        stmt = select(OrderModel).where(OrderModel.id == order_id).where(OrderModel.team_id == self.ctx.team_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = self.session.scalar(stmt)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    def _load_draft(self, order_id: str, action: str) -> OrderModel:
        try:
            order = self._load(order_id, for_update=True)
        except NotFoundError as exc:
            raise NotFoundError(NOT_EDITABLE_MESSAGE) from exc
        if order.status != OrderStatus.DRAFT.value:
            raise InvalidStateError(action, order.status)
        return order

    def get(self, order_id: str) -> OrderModel:
        return self._load(order_id)

    def list_orders(self, order_filter: OrderFilter | None = None) -> OrderListing:
        order_filter = order_filter or OrderFilter()
        stmt = (
            select(OrderModel)
            .where(OrderModel.team_id == self.ctx.team_id)
            .order_by(desc(OrderModel.created_at))
            .limit(self.settings.list_limit)
        )
        orders = list(self.session.scalars(order_filter.apply(stmt)).all())

        counts = self.session.execute(
            select(OrderModel.status, func.count(OrderModel.id), func.coalesce(func.sum(OrderModel.total_cents), 0))
            .where(OrderModel.team_id == self.ctx.team_id)
            .group_by(OrderModel.status)
        ).all()
        status_counts = {status.value: 0 for status in OrderStatus}
        total = 0
        for status, count, cents in counts:
            status_counts[status] = int(count)
            total += int(cents)
        return OrderListing(orders=orders, status_counts=status_counts, total_cents=total)

    def create(self, vendor_id: str | None = None, notes: str | None = None) -> OrderModel:
        require_elevated(self.ctx, "creating an order")
        order = OrderModel(
            team_id=self.ctx.team_id,
            vendor_id=self._check_vendor(vendor_id),
            status=OrderStatus.DRAFT.value,
            total_cents=0,
            notes=self._clean_notes(notes),
            created_by_id=self.ctx.caller_id,
        )
        self.session.add(order)
        self._flush("create order")
        logger.info("order created: team_id=%s order_id=%s", self.ctx.team_id, order.id)
        return order

    def update(self, order_id: str, vendor_id: str | None = None, notes: str | None = None) -> OrderModel:
        require_elevated(self.ctx, "editing an order")
        order = self._load_draft(order_id, "update")
        order.vendor_id = self._check_vendor(vendor_id)
        order.notes = self._clean_notes(notes)
        order.updated_at = _now()
        self._flush("update order")
        return order

    def delete_draft(self, order_id: str) -> None:
        require_elevated(self.ctx, "deleting an order")
        order = self._load_draft(order_id, "delete")
        self.session.delete(order)
        self._flush("delete order")
        logger.info("draft order deleted: team_id=%s order_id=%s", self.ctx.team_id, order_id)

    def add_item(
        self,
        order_id: str,
        part_id: str | None,
        quantity: int | None,
        unit_price_cents: int | None,
    ) -> OrderItemModel:
        require_elevated(self.ctx, "adding order items")

        details = []
        if not part_id:
            details.append({"path": ["partId"], "message": "Part ID is required"})
        if quantity is None or int(quantity) < 1:
            details.append({"path": ["quantity"], "message": "Quantity must be at least 1"})
        elif int(quantity) > MAX_QUANTITY:
            details.append({"path": ["quantity"], "message": f"Quantity must be {MAX_QUANTITY} or less"})
        if unit_price_cents is None or int(unit_price_cents) < 0:
            details.append({"path": ["unitPrice"], "message": "Unit price cannot be negative"})
        elif int(unit_price_cents) > MAX_UNIT_PRICE_CENTS:
            details.append({"path": ["unitPrice"], "message": "Unit price is too large"})
        if details:
            raise ValidationError(MISSING_FIELDS_MESSAGE, details=details)

        order = self._load_draft(order_id, "add_item")
        part = self.parts.get_part(self.ctx.team_id, part_id)

        item = OrderItemModel(
            order_id=order.id,
            part_id=part.id,
            quantity=int(quantity),
            unit_price_cents=int(unit_price_cents),
        )
        self.session.add(item)
        self._flush("add order item")
        recompute_total(self.session, order)
        order.updated_at = _now()
        self._flush("update order total")
        logger.info(
            "order item added: order_id=%s part_id=%s qty=%s unit_price_cents=%s total_cents=%s",
            order.id,
            part.id,
            item.quantity,
            item.unit_price_cents,
            order.total_cents,
        )
        return item

    def remove_item(self, order_id: str, item_id: str) -> OrderModel:
        require_elevated(self.ctx, "removing order items")
        order = self._load_draft(order_id, "remove_item")
        item = self.session.scalar(
            select(OrderItemModel).where(OrderItemModel.id == item_id).where(OrderItemModel.order_id == order.id)
        )
        if item is None:
            raise NotFoundError("Order item not found")
        self.session.delete(item)
        self._flush("remove order item")
        recompute_total(self.session, order)
        order.updated_at = _now()
        self._flush("update order total")
        return order

    def item_count(self, order_id: str) -> int:
        return int(
            self.session.scalar(select(func.count(OrderItemModel.id)).where(OrderItemModel.order_id == order_id)) or 0
        )

    def transition(self, order_id: str, action: str, reason: str | None = None) -> OrderModel:
        order = self._load(order_id, for_update=True)
        transition = self.controller.resolve(
            action,
            order.status,
            self.ctx.caller_role,
            item_count=self.item_count(order.id),
            reason=reason,
        )
        cleaned_reason = self.controller.clean_reason(reason) if transition.accepts_reason else None
        previous = order.status
        self._apply(order, transition, cleaned_reason)
        self.session.add(
            OrderStatusChangeModel(
                order_id=order.id,
                action=transition.action,
                from_status=previous,
                to_status=order.status,
                actor_id=self.ctx.caller_id,
                actor_role=self.ctx.caller_role,
                reason=cleaned_reason,
            )
        )
        self._flush(action)
        logger.info(
            "order transition: order_id=%s action=%s %s -> %s actor_id=%s",
            order.id,
            action,
            previous,
            order.status,
            self.ctx.caller_id,
        )
        return order

    def _apply(self, order: OrderModel, transition: OrderTransition, reason: str | None) -> None:
        now = _now()
        order.status = transition.target.value
        setattr(order, transition.timestamp_field, now)
        order.updated_at = now
        if transition.records_approver:
            order.approved_by_id = self.ctx.caller_id
        if transition.accepts_reason:
            order.rejection_reason = reason
        if transition.restocks_parts and self.controller.policy.receive_updates_inventory:
            self._restock(order)

    def _restock(self, order: OrderModel) -> None:
        items = self.session.scalars(select(OrderItemModel).where(OrderItemModel.order_id == order.id)).all()
        for item in items:
            part = self.parts.get_part(self.ctx.team_id, item.part_id)
            self.parts.restock(part, item.quantity)
        logger.info("inventory restocked from order: order_id=%s items=%s", order.id, len(items))

    def submit(self, order_id: str) -> OrderModel:
        return self.transition(order_id, "submit")

    def approve(self, order_id: str) -> OrderModel:
        return self.transition(order_id, "approve")

    def reject(self, order_id: str, reason: str | None = None) -> OrderModel:
        return self.transition(order_id, "reject", reason=reason)

    def mark_ordered(self, order_id: str) -> OrderModel:
        return self.transition(order_id, "mark_ordered")

    def receive(self, order_id: str) -> OrderModel:
        return self.transition(order_id, "receive")

    def history(self, order_id: str) -> list[OrderStatusChangeModel]:
        stmt = (
            select(OrderStatusChangeModel)
            .where(OrderStatusChangeModel.order_id == order_id)
            .order_by(OrderStatusChangeModel.id.asc())
        )
        return list(self.session.scalars(stmt).all())
