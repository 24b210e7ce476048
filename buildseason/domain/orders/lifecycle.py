"""Order lifecycle: the transition table and the checks run against it.

Every status write goes through :meth:`OrderLifecycleController.resolve`.
Handlers never compare status strings themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from buildseason.core.config import Settings, get_settings
from buildseason.core.errors import AuthorizationError, InvalidStateError, ValidationError


class OrderStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ORDERED = "ordered"
    RECEIVED = "received"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return not any(t.source is self for t in TRANSITIONS)

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        try:
            return cls(value)
        except ValueError as exc:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError.for_field("status", f"status must be one of: {allowed}") from exc


STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.DRAFT: "Draft",
    OrderStatus.PENDING: "Pending Approval",
    OrderStatus.APPROVED: "Approved",
    OrderStatus.REJECTED: "Rejected",
    OrderStatus.ORDERED: "Ordered",
    OrderStatus.RECEIVED: "Received",
}


@dataclass(frozen=True)
class OrderTransition:
    action: str
    source: OrderStatus
    target: OrderStatus
    roles: frozenset[str]
    timestamp_field: str
    description: str
    requires_items: bool = False
    records_approver: bool = False
    accepts_reason: bool = False
    restocks_parts: bool = False


TRANSITIONS: tuple[OrderTransition, ...] = (
    OrderTransition(
        action="submit",
        source=OrderStatus.DRAFT,
        target=OrderStatus.PENDING,
        roles=frozenset({"admin", "mentor"}),
        timestamp_field="submitted_at",
        description="Submit a draft for approval",
        requires_items=True,
    ),
    OrderTransition(
        action="approve",
        source=OrderStatus.PENDING,
        target=OrderStatus.APPROVED,
        roles=frozenset({"admin"}),
        timestamp_field="approved_at",
        description="Approve a pending order",
        records_approver=True,
    ),
    OrderTransition(
        action="reject",
        source=OrderStatus.PENDING,
        target=OrderStatus.REJECTED,
        roles=frozenset({"admin"}),
        timestamp_field="updated_at",
        description="Reject a pending order",
        accepts_reason=True,
    ),
    OrderTransition(
        action="mark_ordered",
        source=OrderStatus.APPROVED,
        target=OrderStatus.ORDERED,
        roles=frozenset({"admin", "mentor"}),
        timestamp_field="ordered_at",
        description="Mark an approved order as purchased",
    ),
    OrderTransition(
        action="receive",
        source=OrderStatus.ORDERED,
        target=OrderStatus.RECEIVED,
        roles=frozenset({"admin", "mentor"}),
        timestamp_field="received_at",
        description="Mark a purchased order as received",
        restocks_parts=True,
    ),
)

ACTIONS: frozenset[str] = frozenset(t.action for t in TRANSITIONS)


@dataclass(frozen=True)
class OrderLifecyclePolicy:
    reject_requires_reason: bool = False
    receive_updates_inventory: bool = False
    rejection_reason_max_length: int = 1000

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "OrderLifecyclePolicy":
        settings = settings or get_settings()
        return cls(
            reject_requires_reason=settings.reject_requires_reason,
            receive_updates_inventory=settings.receive_updates_inventory,
            rejection_reason_max_length=settings.rejection_reason_max_length,
        )


class OrderLifecycleController:
    def __init__(
        self,
        policy: OrderLifecyclePolicy | None = None,
        transitions: tuple[OrderTransition, ...] = TRANSITIONS,
    ):
        self.policy = policy or OrderLifecyclePolicy.from_settings()
        self._table: dict[tuple[str, OrderStatus], OrderTransition] = {
            (t.action, t.source): t for t in transitions
        }

    def resolve(
        self,
        action: str,
        current: OrderStatus | str,
        role: str,
        item_count: int = 0,
        reason: str | None = None,
    ) -> OrderTransition:
        """Return the transition for ``action`` or raise.

        Checked in order: the edge exists from ``current``, the role may take
        it, then the edge's guards.
        """
        status = OrderStatus(current)
        transition = self._table.get((action, status))
        if transition is None:
            if action not in ACTIONS:
                raise InvalidStateError(action, status.value, "unknown action")
            raise InvalidStateError(action, status.value)

        if role not in transition.roles:
            allowed = " or ".join(sorted(transition.roles))
            raise AuthorizationError(f"{action} requires {allowed} role")

        if transition.requires_items and item_count < 1:
            raise InvalidStateError(action, status.value, "order has no items")

        if transition.accepts_reason:
            self.clean_reason(reason)
        return transition

    def clean_reason(self, reason: str | None) -> str | None:
        cleaned = (reason or "").strip() or None
        if cleaned is None and self.policy.reject_requires_reason:
            raise ValidationError.for_field("reason", "Rejection reason is required")
        if cleaned is not None and len(cleaned) > self.policy.rejection_reason_max_length:
            raise ValidationError.for_field(
                "reason",
                f"Rejection reason must be {self.policy.rejection_reason_max_length} characters or less",
            )
        return cleaned

    def allowed_actions(self, current: OrderStatus | str, role: str) -> list[str]:
        status = OrderStatus(current)
        return [
            t.action
            for (action, source), t in self._table.items()
            if source is status and role in t.roles
        ]

    def next_statuses(self, current: OrderStatus | str) -> list[OrderStatus]:
        status = OrderStatus(current)
        return [t.target for (_, source), t in self._table.items() if source is status]

    def manifest(self) -> list[dict]:
        return [
            {
                "action": t.action,
                "from": t.source.value,
                "to": t.target.value,
                "roles": sorted(t.roles),
                "description": t.description,
            }
            for t in self._table.values()
        ]
