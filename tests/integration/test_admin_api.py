from io import BytesIO
import pytest
from openpyxl import load_workbook

from partyhub.utils.security import get_current_user
from partyhub.admin.export import XLSX_MEDIA_TYPE

@pytest.fixture
def as_plain_user(app, user_ctx):
    app.dependency_overrides[get_current_user] = lambda: user_ctx
    yield user_ctx
    app.dependency_overrides.pop(get_current_user, None)

def test_admin_api_requires_token(client, fake_db):
    assert client.get("/admin/api/stats").status_code == 401

def test_admin_api_forbidden_for_users(client, fake_db, as_plain_user):
    r = client.get("/admin/api/bookings")
    assert r.status_code == 403
    assert r.json()["detail"] == "Admin access required"

def test_admin_stats_and_no_cache(client, fake_db, seeded, as_admin):
    r = client.get("/admin/api/stats")
    assert r.status_code == 200
    assert r.json()["packages_count"] == 2
    assert r.headers["Cache-Control"].startswith("no-store")

def test_admin_lists_bookings_with_customer(client, fake_db, seeded, as_admin):
    fake_db.seed("bookings", {"id": "bk-1", "user_id": "user-1", "package_id": "pkg-active", "status": "pending"})
    items = client.get("/admin/api/bookings").json()["items"]
    assert items[0]["profiles"]["first_name"] == "Ada"
    assert items[0]["service_packages"]["title"] == "Premium Party"

def test_admin_export(client, fake_db, seeded, as_admin):
    fake_db.auth.admin.list_users.return_value = [{"id": "user-1", "email": "user1@example.com"}]
    fake_db.seed("bookings", {
        "id": "bk-1", "user_id": "user-1", "package_id": "pkg-active",
        "event_date": "2030-06-01", "guest_count": 3, "total_amount": 897, "status": "confirmed",
    })
    r = client.get("/admin/api/bookings/export")
    assert r.status_code == 200
    assert r.headers["content-type"] == XLSX_MEDIA_TYPE
    disposition = r.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="bookings-export-')
    assert disposition.endswith('.xlsx"')
    ws = load_workbook(BytesIO(r.content)).active
    assert [c.value for c in ws[2]][:5] == ["bk-1", "Ada Lovelace", "user1@example.com", "555-0100", "Premium Party"]

def test_admin_booking_status_transitions(client, fake_db, seeded, as_admin):
    fake_db.seed("bookings", {"id": "bk-1", "user_id": "user-1", "package_id": "pkg-active", "status": "pending"})
    r = client.post("/admin/api/bookings/bk-1/status", json={"status": "completed"})
    assert r.status_code == 400
    r = client.post("/admin/api/bookings/bk-1/status", json={"status": "cancelled"})
    assert r.status_code == 200
    assert r.json()["item"]["status"] == "cancelled"

def test_admin_package_crud(client, fake_db, as_admin):
    r = client.post("/admin/api/packages", json={"title": "Gold", "price": 250, "capacity": 30, "features": ["Cake"]})
    assert r.status_code == 201
    package_id = r.json()["item"]["id"]
    assert r.json()["item"]["features"] == ["Cake"]

    r = client.post("/admin/api/packages", json={"title": "Broken", "price": 0})
    assert r.status_code == 400

    r = client.put(f"/admin/api/packages/{package_id}", json={"is_active": False})
    assert r.status_code == 200
    assert r.json()["item"]["is_active"] is False

    items = client.get("/admin/api/packages").json()["items"]
    assert [p["id"] for p in items] == [package_id]

    r = client.delete(f"/admin/api/packages/{package_id}")
    assert r.json() == {"ok": True, "deleted": True, "deactivated": False}
    assert client.delete(f"/admin/api/packages/{package_id}").status_code == 404

def test_admin_contacts(client, fake_db, as_admin):
    (row,) = fake_db.seed("contact_submissions", {"name": "Ada", "email": "a@example.com", "status": "new"})
    items = client.get("/admin/api/contacts").json()["items"]
    assert items[0]["id"] == row["id"]
    r = client.post(f"/admin/api/contacts/{row['id']}/status", json={"status": "in_progress"})
    assert r.status_code == 200
    assert fake_db.rows("contact_submissions")[0]["status"] == "in_progress"

def test_admin_analytics(client, fake_db, seeded, as_admin):
    fake_db.seed("bookings", {"id": "bk-1", "user_id": "user-1", "package_id": "pkg-active", "status": "confirmed",
                              "created_at": "2030-01-02T00:00:00+00:00"})
    fake_db.seed("payments", {"booking_id": "bk-1", "amount": 299, "status": "completed", "transaction_id": "pi_1",
                              "paid_at": "2030-01-03T00:00:00+00:00"})
    body = client.get("/admin/api/analytics").json()
    assert body["revenue_generated"] == 299.0
    assert body["monthly_trend"] == [{"month": "2030-01", "bookings": 1, "revenue": 299.0}]
    assert body["popular_packages"][0]["title"] == "Premium Party"
