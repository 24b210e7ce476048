#!/usr/bin/env python3
"""Walk one order through draft -> received against a running API.

Seed a team first with ``buildseason seed-demo`` and pass the printed ids.
"""
from __future__ import annotations

import argparse
import json

import requests


def _call(method: str, url: str, headers: dict, body: dict | None = None) -> dict:
    resp = requests.request(method, url, headers=headers, json=body, timeout=30)
    resp.raise_for_status()
    return resp.json() if resp.content else {}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the order lifecycle end to end")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--api-key", default="buildseason-dev-gateway-key")
    parser.add_argument("--team-id", required=True)
    parser.add_argument("--admin-id", required=True)
    parser.add_argument("--mentor-id", required=True)
    parser.add_argument("--part-id", required=True)
    parser.add_argument("--vendor-id", default=None)
    parser.add_argument("--quantity", type=int, default=2)
    parser.add_argument("--unit-price", default="10.00")
    args = parser.parse_args()

    base = f"{args.base_url}/teams/{args.team_id}/orders"
    mentor = {"X-API-Key": args.api_key, "X-User-Id": args.mentor_id}
    admin = {"X-API-Key": args.api_key, "X-User-Id": args.admin_id}

    order = _call("POST", base, mentor, {"vendorId": args.vendor_id, "notes": "smoke test"})
    order_id = order["id"]
    _call(
        "POST",
        f"{base}/{order_id}/items",
        mentor,
        {"partId": args.part_id, "quantity": args.quantity, "unitPrice": args.unit_price},
    )
    _call("POST", f"{base}/{order_id}/submit", mentor)
    _call("POST", f"{base}/{order_id}/approve", admin)
    _call("POST", f"{base}/{order_id}/mark-ordered", mentor)
    final = _call("POST", f"{base}/{order_id}/receive", mentor)

    print(json.dumps({k: final[k] for k in ("id", "status", "total", "history")}, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
