"""Aircraft fueling: derived amounts, tanker stock and list filters."""

import pytest

from models import FuelTankDB, FuelingOperationDB
from crud.fueling import compute_amounts


def _op(airline_id, tank_id, qty=1000, when="2026-03-15T10:00:00", **extra):
    body = {
        "date_time": when,
        "aircraft_registration": "E7-SJJ",
        "airline_id": airline_id,
        "destination": "Vienna VIE",
        "quantity_liters": qty,
        "tank_id": tank_id,
        "operator_name": "Operator",
    }
    body.update(extra)
    return body


class TestComputeAmounts:

    def test_defaults_density_and_derives_kg(self):
        density, kg, total = compute_amounts(1000, None, None, None, None)
        assert density == 0.8
        assert kg == 800.0
        assert total is None

    def test_total_from_price(self):
        _, kg, total = compute_amounts(1234.5, 0.795, None, 1.1, None)
        assert kg == round(1234.5 * 0.795, 2)
        assert total == round(kg * 1.1, 2)

    def test_explicit_values_win(self):
        _, kg, total = compute_amounts(1000, 0.8, 790, 2.0, 1500)
        assert (kg, total) == (790, 1500)


class TestCreateFueling:

    async def test_price_taken_from_airline_rule(self, client, operator_headers, make_airline, make_tanker, fetch):
        airline = await make_airline(prices={"EUR": 1.15})
        tanker = await make_tanker(current=5000)

        resp = await client.post(
            "/api/fuel/fueling-operations/",
            json=_op(airline.id, tanker.id, currency="eur"),
            headers=operator_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["specific_density"] == 0.8
        assert body["quantity_kg"] == 800.0
        assert body["price_per_kg"] == 1.15
        assert body["currency"] == "EUR"
        assert body["total_amount"] == 920.0
        assert body["airline"]["id"] == airline.id
        assert body["tank"]["identifier"] == tanker.identifier

        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 4000

    async def test_no_rule_leaves_price_empty(self, client, operator_headers, make_airline, make_tanker):
        airline = await make_airline()
        tanker = await make_tanker(current=5000)
        resp = await client.post(
            "/api/fuel/fueling-operations/", json=_op(airline.id, tanker.id, currency="USD"), headers=operator_headers
        )
        assert resp.status_code == 201
        assert resp.json()["price_per_kg"] is None
        assert resp.json()["total_amount"] is None

    async def test_insufficient_tanker_fuel(self, client, operator_headers, make_airline, make_tanker, fetch):
        airline = await make_airline()
        tanker = await make_tanker(current=500)
        resp = await client.post(
            "/api/fuel/fueling-operations/", json=_op(airline.id, tanker.id, qty=600), headers=operator_headers
        )
        assert resp.status_code == 400
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 500

    async def test_unknown_airline_and_tanker(self, client, operator_headers, make_airline, make_tanker):
        airline = await make_airline()
        tanker = await make_tanker(current=500)
        resp = await client.post("/api/fuel/fueling-operations/", json=_op(999, tanker.id, qty=10), headers=operator_headers)
        assert resp.status_code == 404
        resp = await client.post("/api/fuel/fueling-operations/", json=_op(airline.id, 999, qty=10), headers=operator_headers)
        assert resp.status_code == 404

    async def test_zero_quantity_fails_validation(self, client, operator_headers, make_airline, make_tanker):
        airline = await make_airline()
        tanker = await make_tanker(current=500)
        resp = await client.post(
            "/api/fuel/fueling-operations/", json=_op(airline.id, tanker.id, qty=0), headers=operator_headers
        )
        assert resp.status_code == 422

    async def test_read_only_role_cannot_fuel(self, client, viewer_headers, make_airline, make_tanker):
        airline = await make_airline()
        tanker = await make_tanker(current=500)
        resp = await client.post(
            "/api/fuel/fueling-operations/", json=_op(airline.id, tanker.id, qty=10), headers=viewer_headers
        )
        assert resp.status_code == 403


class TestFuelingLifecycle:

    @pytest.fixture
    async def setup(self, make_airline, make_tanker):
        airline = await make_airline(prices={"BAM": 2.0})
        other = await make_airline("Other Air")
        tanker = await make_tanker(current=10000)
        return airline, other, tanker

    async def test_update_only_changes_descriptive_fields(self, client, operator_headers, setup, fetch):
        airline, _, tanker = setup
        op = (await client.post(
            "/api/fuel/fueling-operations/", json=_op(airline.id, tanker.id), headers=operator_headers
        )).json()

        resp = await client.put(
            f"/api/fuel/fueling-operations/{op['id']}",
            json={"flight_number": "JU100", "quantity_liters": 1},
            headers=operator_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["flight_number"] == "JU100"
        assert resp.json()["quantity_liters"] == 1000
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 9000

    async def test_delete_returns_fuel_to_tanker(self, client, admin_headers, operator_headers, setup, fetch):
        airline, _, tanker = setup
        op = (await client.post(
            "/api/fuel/fueling-operations/", json=_op(airline.id, tanker.id, qty=2500), headers=operator_headers
        )).json()

        resp = await client.delete(f"/api/fuel/fueling-operations/{op['id']}", headers=operator_headers)
        assert resp.status_code == 403

        resp = await client.delete(f"/api/fuel/fueling-operations/{op['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 10000
        assert await fetch(FuelingOperationDB, op["id"]) is None

    async def test_delete_refused_when_tanker_refilled_to_capacity(
        self, client, admin_headers, operator_headers, make_airline, make_tanker, fetch
    ):
        airline = await make_airline("Full Air")
        tanker = await make_tanker("CIS-FULL", current=1000, capacity=1000)
        op = (await client.post(
            "/api/fuel/fueling-operations/", json=_op(airline.id, tanker.id, qty=500), headers=operator_headers
        )).json()
        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills",
            json={"source_type": "supplier", "quantity_liters": 500, "supplier_name": "Petrol d.o.o."},
            headers=operator_headers,
        )
        assert resp.status_code == 201

        resp = await client.delete(f"/api/fuel/fueling-operations/{op['id']}", headers=admin_headers)
        assert resp.status_code == 400
        assert "capacity exceeded" in resp.json()["detail"]
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 1000
        assert await fetch(FuelingOperationDB, op["id"]) is not None

    async def test_filters(self, client, operator_headers, setup):
        airline, other, tanker = setup
        await client.post(
            "/api/fuel/fueling-operations/",
            json=_op(airline.id, tanker.id, when="2026-03-15T23:30:00", currency="BAM"),
            headers=operator_headers,
        )
        await client.post(
            "/api/fuel/fueling-operations/",
            json=_op(other.id, tanker.id, when="2026-03-16T00:10:00", destination="Istanbul IST"),
            headers=operator_headers,
        )

        base = "/api/fuel/fueling-operations/"
        resp = await client.get(f"{base}?start_date=2026-03-15&end_date=2026-03-15", headers=operator_headers)
        assert [o["airline_id"] for o in resp.json()] == [airline.id]

        resp = await client.get(f"{base}?airline_id={other.id}", headers=operator_headers)
        assert len(resp.json()) == 1

        resp = await client.get(f"{base}?destination=ist", headers=operator_headers)
        assert [o["destination"] for o in resp.json()] == ["Istanbul IST"]

        resp = await client.get(f"{base}?currency=bam", headers=operator_headers)
        assert len(resp.json()) == 1

        resp = await client.get(f"{base}", headers=operator_headers)
        assert [o["date_time"][:10] for o in resp.json()] == ["2026-03-16", "2026-03-15"]

    async def test_reversed_date_range_is_rejected(self, client, operator_headers):
        resp = await client.get(
            "/api/fuel/fueling-operations/?start_date=2026-03-16&end_date=2026-03-15", headers=operator_headers
        )
        assert resp.status_code == 400

    async def test_missing_operation_is_404(self, client, operator_headers):
        resp = await client.get("/api/fuel/fueling-operations/999", headers=operator_headers)
        assert resp.status_code == 404
