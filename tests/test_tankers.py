"""Mobile tankers: CRUD, refills and the unified transaction history."""

from datetime import datetime

import pytest

from models import FuelTankDB, FixedStorageTankDB


def _supplier_refill(qty, when="2026-03-01T08:00:00", supplier="Hifa"):
    return {"source_type": "supplier", "quantity_liters": qty, "refill_datetime": when, "supplier_name": supplier}


def _fixed_refill(tank_id, qty, when="2026-03-02T08:00:00", token=None):
    body = {"source_type": "fixed", "quantity_liters": qty, "refill_datetime": when, "source_fixed_tank_id": tank_id}
    if token:
        body["override_token"] = token
    return body


class TestTankerCrud:

    async def test_create_and_duplicate_identifier(self, client, admin_headers):
        payload = {"identifier": "CIS-7", "name": "Tanker 7", "capacity_liters": 15000, "fuel_type": "JET A-1"}
        resp = await client.post("/api/fuel/tanks/", json=payload, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["current_liters"] == 0

        resp = await client.post("/api/fuel/tanks/", json=payload, headers=admin_headers)
        assert resp.status_code == 409

    async def test_update_cannot_overfill(self, client, admin_headers, make_tanker):
        tanker = await make_tanker(capacity=1000)
        resp = await client.put(f"/api/fuel/tanks/{tanker.id}", json={"current_liters": 1001}, headers=admin_headers)
        assert resp.status_code == 400

    async def test_delete_blocked_by_fueling_operation(self, client, admin_headers, make_tanker, make_airline):
        tanker = await make_tanker(current=1000)
        airline = await make_airline()
        await client.post(
            "/api/fuel/fueling-operations/",
            json={
                "date_time": "2026-03-01T10:00:00", "aircraft_registration": "E7-ABC", "airline_id": airline.id,
                "destination": "IST", "quantity_liters": 100, "tank_id": tanker.id, "operator_name": "Op",
            },
            headers=admin_headers,
        )
        resp = await client.delete(f"/api/fuel/tanks/{tanker.id}", headers=admin_headers)
        assert resp.status_code == 400


class TestRefills:

    async def test_supplier_refill_adds_fuel(self, client, operator_headers, make_tanker, fetch):
        tanker = await make_tanker(current=1000)
        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_supplier_refill(2500), headers=operator_headers)
        assert resp.status_code == 201
        assert resp.json()["mrn_breakdown"] == []
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 3500

    async def test_supplier_name_required(self, client, operator_headers, make_tanker):
        tanker = await make_tanker()
        body = _supplier_refill(100)
        body["supplier_name"] = " "
        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=body, headers=operator_headers)
        assert resp.status_code == 422

    async def test_refill_over_capacity_rejected(self, client, operator_headers, make_tanker):
        tanker = await make_tanker(current=19000, capacity=20000)
        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_supplier_refill(1500), headers=operator_headers)
        assert resp.status_code == 400

    async def test_fixed_refill_consumes_mrn_fifo(
        self, client, operator_headers, make_tanker, make_fixed_tank, fetch, fetch_mrns
    ):
        tank = await make_fixed_tank(current=3000, mrns=[
            ("OLD", 1000, datetime(2026, 1, 1)),
            ("NEW", 2000, datetime(2026, 2, 1)),
        ])
        tanker = await make_tanker()

        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills", json=_fixed_refill(tank.id, 1500), headers=operator_headers
        )
        assert resp.status_code == 201
        breakdown = resp.json()["mrn_breakdown"]
        assert [(b["mrn"], b["quantity_liters"]) for b in breakdown] == [("OLD", 1000), ("NEW", 500)]

        assert (await fetch(FixedStorageTankDB, tank.id)).current_quantity_liters == 1500
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 1500
        assert [m.remaining_quantity_liters for m in await fetch_mrns(tank.id)] == [0, 1500]

    async def test_fixed_refill_fuel_type_mismatch(self, client, operator_headers, make_tanker, make_fixed_tank):
        tank = await make_fixed_tank(current=1000, fuel_type="AVGAS 100LL", mrns=[("A", 1000, None)])
        tanker = await make_tanker()
        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills", json=_fixed_refill(tank.id, 100), headers=operator_headers
        )
        assert resp.status_code == 400

    async def test_fixed_refill_insufficient_tank(self, client, operator_headers, make_tanker, make_fixed_tank):
        tank = await make_fixed_tank(current=100, mrns=[("A", 100, None)])
        tanker = await make_tanker()
        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills", json=_fixed_refill(tank.id, 500), headers=operator_headers
        )
        assert resp.status_code == 400

    async def test_fixed_refill_requires_tank_id(self, client, operator_headers, make_tanker):
        tanker = await make_tanker()
        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills",
            json={"source_type": "fixed", "quantity_liters": 100},
            headers=operator_headers,
        )
        assert resp.status_code == 422

    async def test_inconsistent_source_tank_blocks_refill(
        self, client, operator_headers, make_tanker, make_fixed_tank, fetch
    ):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 800, None)])
        tanker = await make_tanker()
        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills", json=_fixed_refill(tank.id, 100), headers=operator_headers
        )
        assert resp.status_code == 409
        assert (await fetch(FixedStorageTankDB, tank.id)).current_quantity_liters == 1000
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 0


class TestTransactions:

    async def test_history_is_unified_and_newest_first(
        self, client, admin_headers, make_tanker, make_fixed_tank, make_airline
    ):
        tank = await make_fixed_tank(current=5000, mrns=[("A", 5000, None)])
        tanker = await make_tanker()
        airline = await make_airline("History Air")

        await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_supplier_refill(3000), headers=admin_headers)
        await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_fixed_refill(tank.id, 2000), headers=admin_headers)
        resp = await client.post(
            "/api/fuel/fueling-operations/",
            json={
                "date_time": "2026-03-03T08:00:00", "aircraft_registration": "E7-XYZ", "airline_id": airline.id,
                "destination": "FRA", "quantity_liters": 1200, "tank_id": tanker.id, "operator_name": "Op",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        resp = await client.post(
            "/api/fuel/drains/records",
            json={"date_time": "2026-03-04T08:00:00", "source_type": "mobile", "source_id": tanker.id, "quantity_liters": 20},
            headers=admin_headers,
        )
        assert resp.status_code == 201

        resp = await client.get(f"/api/fuel/tanks/{tanker.id}/transactions", headers=admin_headers)
        assert resp.status_code == 200
        rows = resp.json()
        assert [r["type"] for r in rows] == ["drain", "aircraft_fueling", "fixed_tank_transfer", "supplier_refill"]
        assert rows[1]["destination_name"] == "E7-XYZ (History Air)"
        assert rows[2]["source_name"] == tank.tank_name
        assert rows[2]["mrn_breakdown"][0]["mrn"] == "A"
        assert rows[3]["source_name"] == "Hifa"

    async def test_history_of_missing_tanker_is_404(self, client, admin_headers):
        resp = await client.get("/api/fuel/tanks/999/transactions", headers=admin_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("path", ["refills", "transactions"])
    async def test_empty_history(self, client, admin_headers, make_tanker, path):
        tanker = await make_tanker()
        resp = await client.get(f"/api/fuel/tanks/{tanker.id}/{path}", headers=admin_headers)
        assert resp.json() == []
