from decimal import Decimal

from field_expenses.routers.receipts import get_blob_store
from field_expenses.services.blob_store import LocalBlobStore


def _batch(mission_id, date="2024-01-02", cards=None):
    return {
        "mission_id": mission_id,
        "date": date,
        "cards": cards
        if cards is not None
        else [
            {"category": "travel", "rows": [{"description": "Bus", "amount": "100"}]},
            {"category": "cash", "rows": [{"description": "Advance", "amount": "40"}]},
        ],
    }


def _save(client, headers, mission_id, **kw):
    return client.post("/expenses/batch", json=_batch(mission_id, **kw), headers=headers)


def test_health_and_root(client):
    assert client.get("/health").json()["status"] == "ok"
    assert "version" in client.get("/").json()


def test_unknown_route_uses_error_shape(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_missing_or_unknown_actor_is_rejected(client, mission_id):
    assert client.post("/expenses/batch", json=_batch(mission_id)).status_code == 401
    r = client.post(
        "/expenses/batch", json=_batch(mission_id), headers={"X-Actor-Id": "ghost"}
    )
    assert r.status_code == 401
    assert r.json()["error"] == "unknown_actor"


def test_save_batch(client, member_headers, mission_id):
    r = _save(client, member_headers, mission_id)
    assert r.status_code == 201
    body = r.json()
    assert Decimal(body["live_total"]) == Decimal("60")
    assert body["warnings"] == []
    assert [s["expense"]["status"] for s in body["records"]] == ["pending", "pending"]
    assert all(not s["limit_exceeded"] for s in body["records"])
    listed = client.get("/expenses/", headers=member_headers).json()
    assert len(listed) == 2


def test_empty_batch_is_refused(client, member_headers, mission_id):
    cards = [
        {"category": "", "rows": [{"description": "Lunch", "amount": "10"}]},
        {"category": "meal", "rows": [{"description": "", "amount": "abc"}]},
    ]
    r = _save(client, member_headers, mission_id, cards=cards)
    assert r.status_code == 422
    assert r.json()["error"] == "empty_batch"
    assert client.get("/expenses/", headers=member_headers).json() == []


def test_over_limit_is_saved_with_warning(client, admin_headers, member_headers, mission_id):
    r = client.put("/limits/meal", json={"daily_limit": "500"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["updated_by"] == "admin-1"

    cards = [{"category": "meal", "rows": [{"description": "Lunch", "amount": "300"}]}]
    first = _save(client, member_headers, mission_id, cards=cards).json()
    assert first["records"][0]["limit_exceeded"] is False

    second = _save(client, member_headers, mission_id, cards=cards).json()
    saved = second["records"][0]
    assert saved["limit_exceeded"] is True
    assert saved["expense"]["status"] == "pending"
    assert second["warnings"] == ["meal exceeds daily limit, requires admin approval"]


def test_preview_saves_nothing(client, admin_headers, member_headers, mission_id):
    client.put("/limits/travel", json={"daily_limit": "50"}, headers=admin_headers)
    r = client.post(
        "/expenses/preview", json=_batch(mission_id), headers=member_headers
    )
    assert r.status_code == 200
    body = r.json()
    assert Decimal(body["live_total"]) == Decimal("60")
    assert [rec["limit_exceeded"] for rec in body["records"]] == [True, False]
    assert client.get("/expenses/", headers=member_headers).json() == []


def test_only_admins_change_limits(client, member_headers):
    r = client.put("/limits/meal", json={"daily_limit": "1"}, headers=member_headers)
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"
    limits = client.get("/limits/").json()
    assert {l["category"] for l in limits} == {
        "travel", "meal", "luggage", "hotel", "cash", "other"
    }


def test_negative_limit_is_a_validation_error(client, admin_headers):
    r = client.put("/limits/meal", json={"daily_limit": "-5"}, headers=admin_headers)
    assert r.status_code == 422


def test_approval_flow(client, admin_headers, member_headers, mission_id):
    saved = _save(client, member_headers, mission_id).json()
    expense_id = saved["records"][0]["expense"]["id"]

    assert (
        client.post(f"/expenses/{expense_id}/approve", headers=member_headers).status_code
        == 403
    )
    r = client.post(f"/expenses/{expense_id}/approve", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "approved"
    assert r.json()["approver_id"] == "admin-1"

    r = client.post(
        f"/expenses/{expense_id}/reject", json={"reason": "late"}, headers=admin_headers
    )
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_transition"

    r = client.post(f"/expenses/{expense_id}/settle", headers=admin_headers)
    assert r.json()["status"] == "settled"
    assert r.json()["settled_at"] is not None

    assert (
        client.post(f"/expenses/{expense_id}/settle", headers=admin_headers).status_code
        == 409
    )


def test_reject_requires_reason(client, admin_headers, member_headers, mission_id):
    saved = _save(client, member_headers, mission_id).json()
    expense_id = saved["records"][0]["expense"]["id"]
    r = client.post(
        f"/expenses/{expense_id}/reject", json={"reason": ""}, headers=admin_headers
    )
    assert r.status_code == 422
    assert r.json()["error"] == "missing_reason"

    r = client.post(
        f"/expenses/{expense_id}/reject",
        json={"reason": "no receipt"},
        headers=admin_headers,
    )
    assert r.json()["status"] == "rejected"
    assert r.json()["rejection_reason"] == "no receipt"


def test_transition_unknown_expense(client, admin_headers):
    r = client.post("/expenses/missing/approve", headers=admin_headers)
    assert r.status_code == 404


def test_members_only_see_their_own_expenses(
    client, db, admin_headers, member_headers, mission_id
):
    _save(client, member_headers, mission_id)
    other = db.create_user("Ravi", "ravi@example.com")
    db.set_user_approved(other)
    other_headers = {"X-Actor-Id": other}
    assert client.get("/expenses/", headers=other_headers).json() == []
    r = client.get(
        "/expenses/", params={"owner_id": "x"}, headers=other_headers
    )
    assert r.status_code == 403
    assert len(client.get("/expenses/", headers=admin_headers).json()) == 2


def test_timeline_and_summary(client, member_headers, mission_id):
    _save(client, member_headers, mission_id, date="2024-01-01")
    cards = [{"category": "hotel", "rows": [{"description": "Inn", "amount": "900"}]}]
    _save(client, member_headers, mission_id, date="2024-01-03", cards=cards)

    days = client.get("/expenses/timeline", headers=member_headers).json()
    assert [d["date"] for d in days] == ["2024-01-03", "2024-01-01"]
    assert Decimal(days[1]["total"]) == Decimal("60")
    assert [r["category"] for r in days[1]["records"]] == ["travel", "cash"]

    s = client.get(
        "/expenses/summary", params={"today": "2024-01-03"}, headers=member_headers
    ).json()
    assert Decimal(s["total_received"]) == Decimal("40")
    assert Decimal(s["total_expense"]) == Decimal("1000")
    assert Decimal(s["today_expense"]) == Decimal("900")
    assert Decimal(s["balance"]) == Decimal("-960")
    assert s["balance_status"] == "deficit"


def test_unapproved_user_cannot_submit(client, db, mission_id):
    newcomer = client.post(
        "/users/", json={"name": "Kiran", "email": "Kiran@Example.com"}
    ).json()
    assert newcomer["is_approved"] is False
    assert newcomer["email"] == "kiran@example.com"
    r = client.post(
        "/missions/", json={"name": "Trip"}, headers={"X-Actor-Id": newcomer["id"]}
    )
    assert r.status_code == 403


def test_user_administration(client, admin_headers):
    user = client.post("/users/", json={"name": "Kiran", "email": "k@example.com"}).json()
    assert client.post("/users/", json={"name": "K2", "email": "k@example.com"}).status_code == 409
    assert (
        client.post(f"/users/{user['id']}/promote", headers=admin_headers).status_code
        == 409
    )
    approved = client.post(f"/users/{user['id']}/approve", headers=admin_headers).json()
    assert approved["is_approved"] is True
    promoted = client.post(f"/users/{user['id']}/promote", headers=admin_headers).json()
    assert promoted["role"] == "admin"
    assert client.get("/users/", headers={"X-Actor-Id": user["id"]}).status_code == 200


def test_mission_lifecycle(client, member_headers, mission_id):
    active = client.get("/missions/active", headers=member_headers).json()
    assert active["id"] == mission_id

    r = client.post("/missions/", json={"name": "Another"}, headers=member_headers)
    assert r.status_code == 409
    assert r.json()["error"] == "mission_conflict"

    done = client.post(f"/missions/{mission_id}/complete", headers=member_headers).json()
    assert done["status"] == "completed"
    assert done["end_date"] is not None
    assert client.get("/missions/active", headers=member_headers).json() is None

    r = _save(client, member_headers, mission_id)
    assert r.status_code == 409

    r = client.post("/missions/", json={"name": "Another"}, headers=member_headers)
    assert r.status_code == 201
    assert len(client.get("/missions/", headers=member_headers).json()) == 2


def test_reports(client, admin_headers, member_headers, mission_id):
    _save(client, member_headers, mission_id)
    assert client.get("/reports/breakdown", headers=member_headers).status_code == 403

    b = client.get("/reports/breakdown", headers=admin_headers).json()
    totals = {c["category"]: Decimal(c["total"]) for c in b["categories"]}
    assert totals["travel"] == Decimal("100")
    assert totals["cash"] == Decimal("40")
    assert Decimal(b["max_total"]) == Decimal("100")
    assert b["status_counts"]["pending"] == 2

    r = client.get("/reports/export.csv", headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    lines = r.text.strip().splitlines()
    assert lines[0] == "Date,User,Category,Description,Amount,Status"
    assert "2024-01-02,Asha Field,travel,Bus,100,pending" in lines


def test_receipt_upload(client, member_headers, member_id):
    r = client.post(
        "/receipts/",
        files={"file": ("bill 1.png", b"\x89PNG fake", "image/png")},
        headers=member_headers,
    )
    assert r.status_code == 201
    ref = r.json()["image_ref"]
    assert ref.startswith(f"/receipts/files/{member_id}/")
    assert ref.endswith("_bill_1.png")
    assert client.get(ref).content == b"\x89PNG fake"


def test_receipt_type_is_checked(client, member_headers):
    r = client.post(
        "/receipts/",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=member_headers,
    )
    assert r.status_code == 415


def test_receipt_store_failure_touches_no_expenses(
    client, app, tmp_path, admin_headers, member_headers, mission_id
):
    _save(client, member_headers, mission_id)
    before = client.get("/expenses/", headers=admin_headers).json()
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"")
    app.dependency_overrides[get_blob_store] = lambda: LocalBlobStore(
        blocker / "receipts", "/receipts/files"
    )
    try:
        r = client.post(
            "/receipts/",
            files={"file": ("bill.png", b"\x89PNG fake", "image/png")},
            headers=member_headers,
        )
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 502
    body = r.json()
    assert body["error"] == "upload_failed"
    assert body["detail"].startswith("could not store receipt")
    assert client.get("/expenses/", headers=admin_headers).json() == before


def test_validation_errors_on_amount_fields_are_json(client, admin_headers):
    r = client.put("/limits/meal", json={"daily_limit": "-5"}, headers=admin_headers)
    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "validation_error"
    assert body["detail"][0]["loc"] == ["body", "daily_limit"]


def test_out_of_range_amount_exports_cleanly(
    client, admin_headers, member_headers, mission_id
):
    cards = [
        {"category": "travel", "rows": [{"description": "Bus", "amount": "1e28"}]},
        {"category": "meal", "rows": [{"description": "Tea", "amount": "-0"}]},
        {"category": "hotel", "rows": [{"description": "", "amount": "1e28"}]},
    ]
    saved = _save(client, member_headers, mission_id, cards=cards)
    assert saved.status_code == 201
    assert [Decimal(s["expense"]["amount"]) for s in saved.json()["records"]] == [
        Decimal("0"),
        Decimal("0"),
    ]

    r = client.get("/reports/export.csv", headers=admin_headers)
    assert r.status_code == 200
    lines = r.text.strip().splitlines()
    assert "2024-01-02,Asha Field,travel,Bus,0,pending" in lines
    assert "2024-01-02,Asha Field,meal,Tea,0,pending" in lines
