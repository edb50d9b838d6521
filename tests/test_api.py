import pytest

from api.app import app
from api.deps import get_invoice_client
from persistence import crud
from persistence.models import ProfileModel, SettingsModel

CUSTOMER = {"X-User-Id": "cust-1"}
ADMIN = {"X-User-Id": "admin-1"}


def book(client, car_id, pickup="2025-01-01", ret="2025-01-04"):
    return client.post("/api/bookings", headers=CUSTOMER, json={
        "car_id": car_id, "pickup_date": pickup, "return_date": ret, "pickup_location": "Airport"})


def test_end_to_end_booking_lifecycle(client, db, customer, admin, car):
    resp = book(client, car.id)
    assert resp.status_code == 201
    booking = resp.json()
    assert booking["total_price"] == 150
    assert booking["status"] == "pending"
    assert booking["payment_status"] == "pending"
    assert booking["car_name"] == "Car X"

    resp = client.post(f"/api/bookings/{booking['id']}/submit", headers=CUSTOMER, json={"phone": "0712345678"})
    assert resp.status_code == 200
    assert resp.json()["whatsapp_url"].startswith("https://wa.me/")

    resp = client.post(f"/api/admin/bookings/{booking['id']}/payment", headers=ADMIN, json={})
    assert resp.status_code == 200
    body = resp.json()
    assert body["booking"]["status"] == "confirmed"
    assert body["invoice"]["pdf"].startswith("data:application/pdf")
    db.expire_all()
    assert crud.get_car(db, car.id).available is False

    # not completed yet
    resp = client.post(f"/api/bookings/{booking['id']}/rating", headers=CUSTOMER, json={"rating": 4})
    assert resp.status_code == 409

    resp = client.patch(f"/api/admin/bookings/{booking['id']}", headers=ADMIN, json={"status": "completed"})
    assert resp.status_code == 200
    db.expire_all()
    assert crud.get_car(db, car.id).available is True

    resp = client.post(f"/api/bookings/{booking['id']}/rating", headers=CUSTOMER,
                       json={"rating": 4, "review_text": "Great trip"})
    assert resp.json()["stored"] is True
    resp = client.post(f"/api/bookings/{booking['id']}/rating", headers=CUSTOMER,
                       json={"rating": 1, "review_text": "again"})
    assert resp.status_code == 200
    assert resp.json()["stored"] is False
    assert resp.json()["booking"]["rating"] == 4
    assert resp.json()["booking"]["review_text"] == "Great trip"

    resp = client.get(f"/api/bookings/{booking['id']}/invoice", headers=CUSTOMER)
    assert resp.status_code == 200
    assert resp.json()["filename"] == f"Invoice_{booking['id'][:8]}.pdf"


def test_booking_validation_errors(client, customer, car):
    resp = book(client, car.id, pickup="2025-01-04", ret="2025-01-04")
    assert resp.status_code == 422
    assert resp.json()["error"] == "BookingValidationError"

    resp = book(client, "missing-car")
    assert resp.status_code == 404


def test_unavailable_car_cannot_be_booked(client, db, customer, car):
    crud.set_car_availability(db, car.id, False)
    resp = book(client, car.id)
    assert resp.status_code == 409


def test_submit_rejects_short_phone(client, customer, car):
    booking = book(client, car.id).json()
    resp = client.post(f"/api/bookings/{booking['id']}/submit", headers=CUSTOMER, json={"phone": "12345"})
    assert resp.status_code == 422


def test_customer_cannot_see_other_bookings(client, db, customer, car):
    booking = book(client, car.id).json()
    db.add(ProfileModel(id="cust-2", full_name="Other", role="customer"))
    db.commit()
    resp = client.get(f"/api/bookings/{booking['id']}", headers={"X-User-Id": "cust-2"})
    assert resp.status_code == 404


def test_my_bookings_reports_total_paid(client, customer, admin, car):
    booking = book(client, car.id).json()
    client.post(f"/api/admin/bookings/{booking['id']}/payment", headers=ADMIN, json={"payment_status": "paid"})
    resp = client.get("/api/bookings", headers=CUSTOMER)
    assert resp.json()["total_paid"] == 150
    assert len(resp.json()["items"]) == 1


def test_invoice_requires_paid_booking(client, customer, car):
    booking = book(client, car.id).json()
    resp = client.get(f"/api/bookings/{booking['id']}/invoice", headers=CUSTOMER)
    assert resp.status_code == 409


def test_auth_and_role_gates(client, customer, admin):
    assert client.get("/api/profile").status_code == 401
    assert client.get("/api/profile", headers={"X-User-Id": "nobody"}).status_code == 401
    assert client.get("/api/admin/dashboard", headers=CUSTOMER).status_code == 403
    assert client.get("/api/admin/dashboard", headers=ADMIN).status_code == 200


def test_admin_driver_reassignment(client, db, customer, admin, car, driver_a, driver_b):
    booking = book(client, car.id).json()
    url = f"/api/admin/bookings/{booking['id']}"
    resp = client.patch(url, headers=ADMIN, json={"driver_id": driver_a.id, "status": "confirmed"})
    assert resp.json()["driver_name"] == "Driver A"

    resp = client.patch(url, headers=ADMIN, json={"driver_id": driver_b.id})
    assert resp.status_code == 200
    db.expire_all()
    assert crud.get_driver(db, driver_a.id).available is True
    assert crud.get_driver(db, driver_b.id).available is False

    roster = {d["name"]: d for d in client.get("/api/admin/drivers", headers=ADMIN).json()}
    assert roster["Driver B"]["on_trip"] is True
    assert roster["Driver B"]["on_trip_car"] == "Car X"
    assert roster["Driver A"]["on_trip"] is False


def test_admin_stale_update_conflicts(client, customer, admin, car):
    booking = book(client, car.id).json()
    resp = client.patch(f"/api/admin/bookings/{booking['id']}", headers=ADMIN,
                        json={"status": "cancelled", "expected_status": "confirmed"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "StaleTransitionError"


class RecordingInvoices:
    def __init__(self):
        self.requests = []

    def generate(self, req):
        self.requests.append(req)
        return {"pdf": "data:application/pdf;base64,AAAA"}


@pytest.fixture
def invoices(client):
    recorder = RecordingInvoices()
    app.dependency_overrides[get_invoice_client] = lambda: recorder
    return recorder


def test_admin_patch_to_paid_issues_invoice(client, customer, admin, car, invoices):
    booking = book(client, car.id).json()
    resp = client.patch(f"/api/admin/bookings/{booking['id']}", headers=ADMIN, json={"payment_status": "paid"})
    assert resp.status_code == 200
    body = resp.json()
    assert (body["status"], body["payment_status"]) == ("confirmed", "paid")
    assert body["invoice"] == {"pdf": "data:application/pdf;base64,AAAA"}
    assert [r.booking_id for r in invoices.requests] == [booking["id"]]

    resp = client.patch(f"/api/admin/bookings/{booking['id']}", headers=ADMIN, json={"status": "completed"})
    assert resp.json()["invoice"] is None
    assert len(invoices.requests) == 1


def test_forced_payment_on_busy_car_issues_invoice(client, customer, admin, car, invoices):
    first = book(client, car.id).json()
    second = book(client, car.id, pickup="2025-01-02", ret="2025-01-05").json()
    client.post(f"/api/admin/bookings/{first['id']}/payment", headers=ADMIN, json={})
    url = f"/api/admin/bookings/{second['id']}/payment"

    assert client.post(url, headers=ADMIN, json={}).status_code == 409
    resp = client.post(url, headers=ADMIN, json={"force": True})
    assert resp.status_code == 200
    assert resp.json()["booking"]["status"] == "confirmed"
    assert resp.json()["invoice"]["pdf"].startswith("data:application/pdf")
    assert [r.booking_id for r in invoices.requests] == [first["id"], second["id"]]


def test_reopen_conflict_surfaces_resource(client, customer, admin, car):
    first = book(client, car.id).json()
    second = book(client, car.id, pickup="2025-02-01", ret="2025-02-03").json()
    client.patch(f"/api/admin/bookings/{first['id']}", headers=ADMIN, json={"status": "confirmed"})
    client.patch(f"/api/admin/bookings/{first['id']}", headers=ADMIN, json={"status": "completed"})
    client.patch(f"/api/admin/bookings/{second['id']}", headers=ADMIN, json={"status": "confirmed"})

    resp = client.patch(f"/api/admin/bookings/{first['id']}", headers=ADMIN, json={"status": "confirmed"})
    assert resp.status_code == 409
    assert resp.json()["resource"] == "car"
    assert resp.json()["booking_id"] == second["id"]


def test_delete_only_historical_bookings(client, customer, admin, car):
    booking = book(client, car.id).json()
    url = f"/api/admin/bookings/{booking['id']}"
    assert client.delete(url, headers=ADMIN).status_code == 409
    client.patch(url, headers=ADMIN, json={"status": "cancelled"})
    assert client.delete(url, headers=ADMIN).status_code == 204
    assert client.get(f"/api/bookings/{booking['id']}", headers=CUSTOMER).status_code == 404


def test_car_admin_and_public_browse(client, admin):
    resp = client.post("/api/admin/cars", headers=ADMIN, json={
        "name": "Range Rover", "trip_type": "long_trip", "capacity": 5, "price_per_day": 120})
    assert resp.status_code == 201
    rover = resp.json()
    client.post("/api/admin/cars", headers=ADMIN, json={"name": "Limo", "trip_type": "wedding", "price_per_day": 300})

    names = [c["name"] for c in client.get("/api/cars", params={"trip_type": "long_trip"}).json()]
    assert names == ["Range Rover"]
    names = [c["name"] for c in client.get("/api/cars", params={"search": "lim"}).json()]
    assert names == ["Limo"]

    client.put(f"/api/admin/cars/{rover['id']}/availability", headers=ADMIN, json={"available": False})
    assert "Range Rover" not in [c["name"] for c in client.get("/api/cars").json()]

    resp = client.patch(f"/api/admin/cars/{rover['id']}", headers=ADMIN, json={"price_per_day": 150})
    assert resp.json()["price_per_day"] == 150
    assert client.delete(f"/api/admin/cars/{rover['id']}", headers=ADMIN).status_code == 204


def test_car_on_confirmed_booking_cannot_be_freed(client, customer, admin, car):
    booking = book(client, car.id).json()
    client.patch(f"/api/admin/bookings/{booking['id']}", headers=ADMIN, json={"status": "confirmed"})
    resp = client.put(f"/api/admin/cars/{car.id}/availability", headers=ADMIN, json={"available": True})
    assert resp.status_code == 409
    assert client.delete(f"/api/admin/cars/{car.id}", headers=ADMIN).status_code == 409


def test_inquiries_flow(client, admin):
    resp = client.post("/api/inquiries", json={
        "full_name": "Visitor", "email": "visitor@mail.com", "subject": "Wedding", "message": "Hi"})
    assert resp.status_code == 201
    inquiry = resp.json()
    assert inquiry["status"] == "unread"
    assert client.post("/api/inquiries", json={
        "full_name": "Visitor", "email": "not-an-email", "subject": "x", "message": "y"}).status_code == 422

    listing = client.get("/api/admin/inquiries", headers=ADMIN).json()
    assert listing["unread"] == 1
    client.post(f"/api/admin/inquiries/{inquiry['id']}/read", headers=ADMIN)
    assert client.get("/api/admin/inquiries", headers=ADMIN).json()["unread"] == 0


def test_maintenance_mode_gates_public_and_customers(client, db, customer, admin, car):
    db.add(SettingsModel(id="global_config", site_name="Elite", maintenance_mode=True, support_phone="0700"))
    db.commit()

    resp = client.get("/api/cars")
    assert resp.status_code == 503
    assert resp.json()["detail"]["support_phone"] == "0700"
    assert book(client, car.id).status_code == 503
    assert client.get("/api/settings").json()["maintenance_mode"] is True
    assert client.get("/api/admin/cars", headers=ADMIN).status_code == 200

    client.patch("/api/admin/settings", headers=ADMIN, json={"maintenance_mode": False})
    assert client.get("/api/cars").status_code == 200


def test_settings_defaults_and_update(client, admin):
    settings = client.get("/api/settings").json()
    assert settings["currency_symbol"] == "$"
    resp = client.patch("/api/admin/settings", headers=ADMIN, json={"site_name": "Drive Kenya"})
    assert resp.json()["site_name"] == "Drive Kenya"
    assert resp.json()["currency_symbol"] == "$"


def test_reconcile_endpoint(client, db, customer, admin, car):
    booking = book(client, car.id).json()
    client.patch(f"/api/admin/bookings/{booking['id']}", headers=ADMIN, json={"status": "confirmed"})
    car_row = crud.get_car(db, car.id)
    db.refresh(car_row)
    car_row.available = True
    db.commit()

    fixes = client.post("/api/admin/maintenance/reconcile-availability", headers=ADMIN).json()
    assert fixes == [{"resource": "car", "resource_id": car.id, "available": False}]


def test_generate_invoice_function(client):
    resp = client.post("/functions/generate-invoice", json={
        "booking_id": "3f2a9c1e-0000", "customer_name": "Jane", "car_name": "Car X",
        "total_days": 3, "amount": 150, "pickup": "2025-01-01", "return": "2025-01-04"})
    assert resp.status_code == 200
    assert resp.json()["pdf"].startswith("data:application/pdf")


def test_profile_update(client, customer):
    resp = client.patch("/api/profile", headers=CUSTOMER, json={"phone": "0712345678"})
    assert resp.json()["phone"] == "0712345678"
    assert resp.json()["full_name"] == "Jane Doe"
