"""
HTTP API tests.

Verifies:
- Protected endpoints return 401 without a token and 403 for the wrong role
- Login / logout round trip
- Readings, sales and the cash custody lifecycle end to end over HTTP
- Deposit receipts are stored and served back
"""

import io

import pytest

from stationops.extensions import db
from stationops.models import Tank

from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/stations"),
            ("GET", "/api/shifts/stations/1/current"),
            ("POST", "/api/inventory/shifts/1/readings"),
            ("POST", "/api/inventory/tanks/1/deliveries"),
            ("GET", "/api/fuel/prices"),
            ("POST", "/api/fuel/sales/shift/1/submit"),
            ("POST", "/api/cash/transactions"),
            ("GET", "/api/cash/floating-cash"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


# =============================================================================
# WRONG ROLE (403)
# =============================================================================


class TestRoleGates:

    def test_station_manager_cannot_view_floating_cash(self, client, sm_headers):
        resp = client.get("/api/cash/floating-cash", headers=sm_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_operation"] == "VIEW_FLOATING_CASH"

    def test_admin_cannot_record_cash(self, client, admin_headers, station):
        resp = client.post(
            "/api/cash/transactions",
            json={"station_id": station.id, "liters_sold": 10, "rate_per_liter_cents": 250},
            headers=admin_headers,
        )
        assert resp.status_code == 403

    def test_area_manager_cannot_set_prices(self, client, am_headers, station):
        resp = client.post(
            "/api/fuel/prices",
            json={"station_id": station.id, "fuel_type": "DIESEL", "price_per_liter_cents": 250},
            headers=am_headers,
        )
        assert resp.status_code == 403

    def test_station_manager_cannot_register_users(self, client, sm_headers):
        resp = client.post(
            "/api/auth/register",
            json={"employee_id": "X1", "name": "X", "password": PASSWORD, "role": "Admin"},
            headers=sm_headers,
        )
        assert resp.status_code == 403

    def test_station_manager_cannot_unlock(self, client, sm_headers):
        resp = client.post("/api/inventory/shifts/1/unlock", headers=sm_headers)
        assert resp.status_code == 403


# =============================================================================
# AUTH
# =============================================================================


class TestAuthFlow:

    def test_login_me_logout(self, client, station_manager):
        resp = client.post("/api/auth/login", json={"employee_id": "SM01", "password": PASSWORD})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["user"]["employee_id"] == "SM01"
        assert "password_hash" not in data["user"]
        headers = auth_headers(data["token"])

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.get_json()["user"]["role"] == "SM"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_bad_password(self, client, station_manager):
        resp = client.post("/api/auth/login", json={"employee_id": "SM01", "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"employee_id": "SM01"})
        assert resp.status_code == 400

    def test_admin_registers_user(self, client, admin_headers, station, area_manager):
        resp = client.post(
            "/api/auth/register",
            json={
                "employee_id": "SM77",
                "name": "Fresh Manager",
                "password": PASSWORD,
                "role": "SM",
                "station_id": station.id,
                "area_manager_id": area_manager.id,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert get_auth_token(client, "SM77") is not None

    def test_register_invalid_role(self, client, admin_headers):
        resp = client.post(
            "/api/auth/register",
            json={"employee_id": "Z1", "name": "Z", "password": PASSWORD, "role": "Owner"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "INVALID_INPUT"


# =============================================================================
# INVENTORY AND SALES
# =============================================================================


class TestInventoryFlow:

    def test_readings_and_sales(self, client, sm_headers, station, tank, nozzle):
        shift_resp = client.get(f"/api/shifts/stations/{station.id}/current", headers=sm_headers)
        assert shift_resp.status_code == 200
        shift = shift_resp.get_json()["shift"]
        assert shift["status"] == "OPEN"

        readings = client.post(
            f"/api/inventory/shifts/{shift['id']}/readings",
            json={"readings": [{"nozzle_id": nozzle.id, "closing_reading": 30}]},
            headers=sm_headers,
        )
        assert readings.status_code == 201
        assert readings.get_json()["readings"][0]["consumption"] == 30.0

        sales = client.get(f"/api/fuel/sales/shift/{shift['id']}", headers=sm_headers).get_json()
        sale_id = sales["sales"][0]["id"]

        updated = client.put(f"/api/fuel/sales/{sale_id}", json={"quantity_liters": 30}, headers=sm_headers)
        assert updated.status_code == 200
        assert updated.get_json()["sale"]["total_amount_cents"] == 300000

        submitted = client.post(f"/api/fuel/sales/shift/{shift['id']}/submit", headers=sm_headers)
        assert submitted.status_code == 200
        assert submitted.get_json()["shift"]["locked"] is True

        again = client.post(f"/api/fuel/sales/shift/{shift['id']}/submit", headers=sm_headers)
        assert again.status_code == 409

        frozen = client.put(f"/api/fuel/sales/{sale_id}", json={"quantity_liters": 5}, headers=sm_headers)
        assert frozen.status_code == 409

        # Meter consumption and sold quantity each debited the tank
        assert db.session.get(Tank, tank.id).current_level == pytest.approx(4940.0)

        recon = client.get(f"/api/fuel/sales/shift/{shift['id']}/reconciliation", headers=sm_headers)
        assert recon.get_json()["balanced"] is True

    def test_negative_consumption_is_400(self, client, sm_headers, station, nozzle, previous_shift):
        shift = client.get(f"/api/shifts/stations/{station.id}/current", headers=sm_headers).get_json()["shift"]

        resp = client.post(
            f"/api/inventory/shifts/{shift['id']}/readings",
            json={"readings": [{"nozzle_id": nozzle.id, "closing_reading": 50}]},
            headers=sm_headers,
        )
        assert resp.status_code == 400

    def test_delivery_over_capacity_is_400(self, client, am_headers, tank):
        resp = client.post(
            f"/api/inventory/tanks/{tank.id}/deliveries",
            json={"liters_delivered": 6000},
            headers=am_headers,
        )
        assert resp.status_code == 400
        assert "exceeds tank capacity" in resp.get_json()["error"]

    def test_delivery(self, client, am_headers, tank):
        resp = client.post(
            f"/api/inventory/tanks/{tank.id}/deliveries",
            json={"liters_delivered": 1500, "ticket_reference": "TK-889"},
            headers=am_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["tank"]["current_level"] == pytest.approx(6500.0)


# =============================================================================
# CASH CUSTODY
# =============================================================================


class TestCashFlow:

    def _create(self, client, sm_headers):
        return client.post(
            "/api/cash/transactions",
            json={
                "liters_sold": 1000,
                "rate_per_liter_cents": 250,
                "card_payments_cents": 150000,
                "bank_deposit_cents": 20000,
            },
            headers=sm_headers,
        )

    def test_full_custody_over_http(self, client, sm_headers, am_headers, admin_headers, station):
        created = self._create(client, sm_headers)
        assert created.status_code == 201
        txn = created.get_json()["transaction"]
        assert txn["cash_to_am_cents"] == 80000
        assert txn["status"] == "PENDING_ACCEPTANCE"

        floating = client.get("/api/cash/floating-cash", headers=admin_headers).get_json()
        assert floating["breakdown"]["pending_acceptance_cents"] == 80000

        # Deposit before acceptance is refused and stores nothing
        early = client.post(
            f"/api/cash/transactions/{txn['id']}/deposit",
            data={"receipt": (io.BytesIO(b"slip"), "slip.png")},
            content_type="multipart/form-data",
            headers=am_headers,
        )
        assert early.status_code == 404

        transfer = client.post(f"/api/cash/transactions/{txn['id']}/transfer", headers=sm_headers)
        assert transfer.status_code == 200

        early = client.post(
            f"/api/cash/transactions/{txn['id']}/deposit",
            data={"receipt": (io.BytesIO(b"slip"), "slip.png")},
            content_type="multipart/form-data",
            headers=am_headers,
        )
        assert early.status_code == 409

        accepted = client.post(f"/api/cash/transactions/{txn['id']}/accept", headers=am_headers)
        assert accepted.status_code == 200
        assert accepted.get_json()["transaction"]["status"] == "WITH_AM"

        floating = client.get("/api/cash/floating-cash", headers=admin_headers).get_json()
        assert floating["breakdown"]["with_am_cents"] == 80000
        assert floating["total_floating_cents"] == 80000

        deposited = client.post(
            f"/api/cash/transactions/{txn['id']}/deposit",
            data={"receipt": (io.BytesIO(b"bank slip bytes"), "slip.png")},
            content_type="multipart/form-data",
            headers=am_headers,
        )
        assert deposited.status_code == 200
        body = deposited.get_json()
        assert body["transaction"]["status"] == "DEPOSITED"
        assert body["receipt_url"].startswith("/uploads/receipts/receipt-")
        assert body["receipt_url"].endswith(".png")

        served = client.get(body["receipt_url"])
        assert served.status_code == 200
        assert served.data == b"bank slip bytes"
        served.close()

        floating = client.get("/api/cash/floating-cash", headers=admin_headers).get_json()
        assert floating["total_floating_cents"] == 0

    def test_duplicate_entry_is_409(self, client, sm_headers, station):
        assert self._create(client, sm_headers).status_code == 201

        resp = self._create(client, sm_headers)
        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "INVALID_STATE"

    def test_other_station_forbidden(self, client, sm_headers, other_station):
        resp = client.post(
            "/api/cash/transactions",
            json={"station_id": other_station.id, "liters_sold": 10, "rate_per_liter_cents": 250,
                  "card_payments_cents": 0},
            headers=sm_headers,
        )
        assert resp.status_code == 403

    def test_deposit_requires_receipt(self, client, sm_headers, am_headers, station):
        txn = self._create(client, sm_headers).get_json()["transaction"]

        resp = client.post(f"/api/cash/transactions/{txn['id']}/deposit", headers=am_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Receipt image required"

    def test_accept_by_wrong_area_manager(self, client, sm_headers, admin_headers, station):
        txn = self._create(client, sm_headers).get_json()["transaction"]
        client.post(f"/api/cash/transactions/{txn['id']}/transfer", headers=sm_headers)

        created = client.post(
            "/api/users",
            json={"employee_id": "AM99", "name": "Stranger", "password": PASSWORD, "role": "AM"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        stranger = auth_headers(get_auth_token(client, "AM99"))

        resp = client.post(f"/api/cash/transactions/{txn['id']}/accept", headers=stranger)
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "UNAUTHORIZED"


class TestSystem:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"

    def test_receipt_path_traversal(self, client, db_session):
        resp = client.get("/uploads/receipts/..%2F..%2Fetc%2Fpasswd")
        assert resp.status_code == 404
