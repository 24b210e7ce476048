from __future__ import annotations

import argparse
import json
import sys

from buildseason.api.utils import isoformat
from buildseason.core.errors import BuildSeasonError
from buildseason.core.logging import configure_logging
from buildseason.core.money import format_cents
from buildseason.demo import seed_demo_team
from buildseason.domain.orders import OrderFilter, OrderLifecycleController, OrderService
from buildseason.domain.teams import resolve_team_context
from buildseason.persistence.db import init_db, session_scope


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="BuildSeason CLI")
    top = parser.add_subparsers(dest="command", required=True)

    top.add_parser("init-db", help="Create database tables")
    top.add_parser("lifecycle", help="Print the order transition table")
    top.add_parser("seed-demo", help="Create a demo team with members, a vendor and parts")

    orders = top.add_parser("orders", help="Inspect team orders")
    orders_sub = orders.add_subparsers(dest="orders_command", required=True)

    list_cmd = orders_sub.add_parser("list", help="List a team's orders")
    list_cmd.add_argument("--team", required=True, help="Team id")
    list_cmd.add_argument("--user", required=True, help="Member user id to act as")
    list_cmd.add_argument("--status", default=None)

    show = orders_sub.add_parser("show", help="Show one order with its items")
    show.add_argument("order_id")
    show.add_argument("--team", required=True, help="Team id")
    show.add_argument("--user", required=True, help="Member user id to act as")

    return parser


def _print(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _list_orders(args: argparse.Namespace) -> int:
    with session_scope() as session:
        ctx = resolve_team_context(session, args.team, args.user)
        listing = OrderService(session, ctx).list_orders(OrderFilter.from_query(args.status))
        _print(
            {
                "team_id": ctx.team_id,
                "count": len(listing.orders),
                "status_counts": listing.status_counts,
                "total": format_cents(listing.total_cents),
                "orders": [
                    {
                        "id": o.id,
                        "status": o.status,
                        "total": format_cents(o.total_cents),
                        "created_at": isoformat(o.created_at),
                    }
                    for o in listing.orders
                ],
            }
        )
    return 0


def _show_order(args: argparse.Namespace) -> int:
    with session_scope() as session:
        ctx = resolve_team_context(session, args.team, args.user)
        service = OrderService(session, ctx)
        order = service.get(args.order_id)
        _print(
            {
                "id": order.id,
                "status": order.status,
                "total_cents": order.total_cents,
                "total": format_cents(order.total_cents),
                "items": [
                    {"part_id": i.part_id, "quantity": i.quantity, "unit_price": format_cents(i.unit_price_cents)}
                    for i in order.items
                ],
                "history": [
                    {"action": h.action, "from": h.from_status, "to": h.to_status, "actor_id": h.actor_id}
                    for h in service.history(order.id)
                ],
                "allowed_actions": service.controller.allowed_actions(order.status, ctx.caller_role),
            }
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "init-db":
        init_db()
        print("database initialised")
        return 0
    if args.command == "lifecycle":
        _print(OrderLifecycleController().manifest())
        return 0
    if args.command == "seed-demo":
        init_db()
        with session_scope() as session:
            seeded = seed_demo_team(session)
            _print(
                {
                    "team_id": seeded.team_id,
                    "users": seeded.users,
                    "vendor_id": seeded.vendor_id,
                    "part_ids": seeded.part_ids,
                }
            )
        return 0
    if args.command == "orders":
        handler = _list_orders if args.orders_command == "list" else _show_order
        try:
            return handler(args)
        except BuildSeasonError as exc:
            print(f"error: {exc.message}", file=sys.stderr)
            return 1

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
