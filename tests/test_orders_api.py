from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from buildseason.core.config import get_settings
from buildseason.main import app


def _orders_url(seeded_team, *parts: str) -> str:
    return "/".join([f"/teams/{seeded_team.team_id}/orders", *parts])


def _draft(client, seeded_team, headers) -> dict:
    resp = client.post(_orders_url(seeded_team), json={"vendorId": seeded_team.vendor_id}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _add(client, seeded_team, order_id, headers, part_id, quantity, unit_price):
    return client.post(
        _orders_url(seeded_team, order_id, "items"),
        json={"partId": part_id, "quantity": quantity, "unitPrice": unit_price},
        headers=headers,
    )


def test_requests_need_gateway_key_and_caller(client, seeded_team):
    url = _orders_url(seeded_team)
    assert client.get(url).status_code == 401
    assert client.get(url, headers={"X-User-Id": seeded_team.users["admin"]}).status_code == 401

    key = get_settings().gateway_api_key
    wrong = client.get(url, headers={"X-API-Key": "nope", "X-User-Id": seeded_team.users["admin"]})
    assert wrong.status_code == 401
    assert wrong.headers["WWW-Authenticate"] == "Bearer"
    assert client.get(url, headers={"X-API-Key": key}).status_code == 401

    bearer = client.get(url, headers={"Authorization": f"Bearer {key}", "X-User-Id": seeded_team.users["admin"]})
    assert bearer.status_code == 200


def test_non_member_gets_not_found(client, seeded_team, other_team):
    headers = {"X-API-Key": get_settings().gateway_api_key, "X-User-Id": other_team.users["admin"]}
    resp = client.get(_orders_url(seeded_team), headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_create_and_price_items_in_dollars(client, seeded_team, auth_headers):
    mentor = auth_headers["mentor"]
    order = _draft(client, seeded_team, mentor)
    assert order["status"] == "draft"
    assert order["statusLabel"] == "Draft"
    assert order["totalCents"] == 0
    assert order["vendor"]["id"] == seeded_team.vendor_id
    assert order["allowedActions"] == ["submit"]
    assert order["canEdit"] is True

    first = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 3, "10.00")
    assert first.status_code == 200, first.text
    assert first.json()["order"]["totalCents"] == 3000

    second = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[2], "1", "5.50")
    body = second.json()["order"]
    assert body["totalCents"] == 3550
    assert body["total"] == "35.50"
    assert [i["lineTotalCents"] for i in body["items"]] == [3000, 550]


def test_item_defaults_to_catalog_price_and_flags_stock(client, seeded_team, auth_headers):
    mentor = auth_headers["mentor"]
    order = _draft(client, seeded_team, mentor)

    resp = client.post(
        _orders_url(seeded_team, order["id"], "items"),
        json={"partId": seeded_team.part_ids[0], "quantity": 5},
        headers=mentor,
    )
    assert resp.status_code == 200, resp.text
    item = resp.json()["order"]["items"][0]
    assert item["unitPriceCents"] == 4199
    assert item["quantityOnHand"] == 4
    assert item["exceedsStock"] is True


def test_invalid_item_input_is_a_400(client, seeded_team, auth_headers):
    mentor = auth_headers["mentor"]
    order = _draft(client, seeded_team, mentor)

    zero = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 0, "1.00")
    assert zero.status_code == 400
    assert zero.json()["detail"] == "Please fill in all required fields."

    negative = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 1, "-1.00")
    assert negative.status_code == 400

    garbage = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 1, "ten dollars")
    assert garbage.status_code == 400
    assert garbage.json()["error"] == "validation_error"

    detail = client.get(_orders_url(seeded_team, order["id"]), headers=mentor).json()
    assert detail["items"] == []
    assert detail["totalCents"] == 0


def test_submit_flow_and_locking(client, seeded_team, auth_headers):
    mentor = auth_headers["mentor"]
    order = _draft(client, seeded_team, mentor)
    submit_url = _orders_url(seeded_team, order["id"], "submit")

    empty = client.post(submit_url, headers=mentor)
    assert empty.status_code == 409
    assert empty.json()["error"] == "invalid_state"

    _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 3, "10.00")
    _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[2], 1, "5.50")

    student = client.post(submit_url, headers=auth_headers["student"])
    assert student.status_code == 403

    submitted = client.post(submit_url, headers=mentor)
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "pending"
    assert submitted.json()["submittedAt"] is not None

    late = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[1], 1, "1.00")
    assert late.status_code == 409
    assert "pending" in late.json()["detail"]
    assert client.get(_orders_url(seeded_team, order["id"]), headers=mentor).json()["totalCents"] == 3550


def test_approval_through_receipt(client, seeded_team, auth_headers):
    mentor, admin = auth_headers["mentor"], auth_headers["admin"]
    order = _draft(client, seeded_team, mentor)
    _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 2, "41.99")
    client.post(_orders_url(seeded_team, order["id"], "submit"), headers=mentor)

    pending = client.get(_orders_url(seeded_team, order["id"]), headers=admin).json()
    assert set(pending["allowedActions"]) == {"approve", "reject"}

    assert client.post(_orders_url(seeded_team, order["id"], "approve"), headers=mentor).status_code == 403
    approved = client.post(_orders_url(seeded_team, order["id"], "approve"), headers=admin)
    assert approved.json()["status"] == "approved"

    client.post(_orders_url(seeded_team, order["id"], "mark-ordered"), headers=mentor)
    received = client.post(_orders_url(seeded_team, order["id"], "receive"), headers=mentor).json()
    assert received["status"] == "received"
    assert received["allowedActions"] == []
    assert [h["to"] for h in received["history"]] == ["pending", "approved", "ordered", "received"]

    again = client.post(_orders_url(seeded_team, order["id"], "receive"), headers=mentor)
    assert again.status_code == 409


def test_reject_with_reason(client, seeded_team, auth_headers):
    mentor, admin = auth_headers["mentor"], auth_headers["admin"]
    order = _draft(client, seeded_team, mentor)
    _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 1, "1.00")
    client.post(_orders_url(seeded_team, order["id"], "submit"), headers=mentor)

    rejected = client.post(
        _orders_url(seeded_team, order["id"], "reject"), json={"reason": "Use the spare motors"}, headers=admin
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["rejectionReason"] == "Use the spare motors"

    twice = client.post(_orders_url(seeded_team, order["id"], "reject"), json={"reason": "again"}, headers=admin)
    assert twice.status_code == 409


def test_list_filters_by_status(client, seeded_team, auth_headers):
    mentor = auth_headers["mentor"]
    first = _draft(client, seeded_team, mentor)
    _add(client, seeded_team, first["id"], mentor, seeded_team.part_ids[0], 1, "2.00")
    client.post(_orders_url(seeded_team, first["id"], "submit"), headers=mentor)
    _draft(client, seeded_team, mentor)

    listing = client.get(_orders_url(seeded_team), headers=auth_headers["student"]).json()
    assert listing["count"] == 2
    assert listing["statusCounts"]["pending"] == 1
    assert listing["totalCents"] == 200
    assert listing["orders"][0]["vendorName"] == "goBILDA"

    pending = client.get(_orders_url(seeded_team), params={"status": "pending"}, headers=mentor).json()
    assert [o["id"] for o in pending["orders"]] == [first["id"]]

    bad = client.get(_orders_url(seeded_team), params={"status": "lost"}, headers=mentor)
    assert bad.status_code == 400


def test_update_delete_and_missing_orders(client, seeded_team, auth_headers):
    mentor = auth_headers["mentor"]
    order = _draft(client, seeded_team, mentor)

    patched = client.patch(
        _orders_url(seeded_team, order["id"]), json={"vendorId": None, "notes": "no vendor yet"}, headers=mentor
    )
    assert patched.status_code == 200
    assert patched.json()["vendorId"] is None
    assert patched.json()["notes"] == "no vendor yet"

    assert client.delete(_orders_url(seeded_team, order["id"]), headers=auth_headers["student"]).status_code == 403
    assert client.delete(_orders_url(seeded_team, order["id"]), headers=mentor).status_code == 204
    assert client.get(_orders_url(seeded_team, order["id"]), headers=mentor).status_code == 404


def test_malformed_body_is_a_400(client, seeded_team, auth_headers):
    resp = client.post(_orders_url(seeded_team), json=["not", "an", "object"], headers=auth_headers["mentor"])
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


def test_lifecycle_manifest(client):
    body = client.get("/orders/lifecycle").json()
    assert {t["action"] for t in body["transitions"]} == {"submit", "approve", "reject", "mark_ordered", "receive"}
    assert body["policy"]["rejectRequiresReason"] is False


def test_out_of_range_item_input_is_a_400(client, seeded_team, auth_headers):
    mentor = auth_headers["mentor"]
    order = _draft(client, seeded_team, mentor)

    huge_quantity = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 10**20, "1.00")
    assert huge_quantity.status_code == 400
    assert huge_quantity.json()["details"][0]["path"] == ["quantity"]

    huge_price = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 1, "1e30")
    assert huge_price.status_code == 400
    assert huge_price.json()["details"][0]["path"] == ["unitPrice"]

    boolean = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], True, "1.00")
    assert boolean.status_code == 400

    detail = client.get(_orders_url(seeded_team, order["id"]), headers=mentor).json()
    assert detail["items"] == []
    assert detail["totalCents"] == 0


def test_storage_failure_is_an_opaque_500(seeded_team, auth_headers, monkeypatch):
    mentor = auth_headers["mentor"]
    with TestClient(app, raise_server_exceptions=False) as client:
        order = _draft(client, seeded_team, mentor)

        def failing_flush(self, *args, **kwargs):
            raise OperationalError("INSERT INTO order_items", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Session, "flush", failing_flush)
        resp = _add(client, seeded_team, order["id"], mentor, seeded_team.part_ids[0], 2, "10.00")
        monkeypatch.undo()

        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal Server Error", "error": "storage_error"}
        detail = client.get(_orders_url(seeded_team, order["id"]), headers=mentor).json()
        assert detail["items"] == []
        assert detail["totalCents"] == 0
