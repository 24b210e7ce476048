from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from buildseason.persistence.models import OrderItemModel


@dataclass
class OrderLine:
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass
class OrderAggregate:
    order_id: str
    status: str = "draft"
    items: list[OrderLine] = field(default_factory=list)

    @property
    def total_cents(self) -> int:
        return sum(item.line_total_cents for item in self.items)

    @classmethod
    def from_rows(cls, order_id: str, status: str, rows: Iterable[OrderItemModel]) -> "OrderAggregate":
        return cls(
            order_id=order_id,
            status=status,
            items=[
                OrderLine(quantity=int(row.quantity), unit_price_cents=int(row.unit_price_cents))
                for row in rows
            ],
        )
