"""Tank vs. MRN reconciliation, checks and corrections."""

from datetime import datetime

import pytest

from models import FixedStorageTankDB
from services.fuel_consistency import classify_difference


class TestClassifyDifference:

    @pytest.mark.parametrize("difference, expected", [
        (0.0, (True, "ok")),
        (0.05, (True, "ok")),
        (-0.1, (True, "ok")),
        (0.2, (False, "warning")),
        (-50.0, (False, "warning")),
        (50.01, (False, "critical")),
        (-600.0, (False, "critical")),
    ])
    def test_default_thresholds(self, difference, expected):
        assert classify_difference(difference) == expected

    def test_custom_tolerance(self):
        assert classify_difference(4.0, tolerance=5.0) == (True, "ok")


class TestConsistencyChecks:

    async def test_difference_is_tank_minus_mrn(self, client, viewer_headers, make_fixed_tank):
        above = await make_fixed_tank("R-1", current=1000, mrns=[("A", 900, None)])
        below = await make_fixed_tank("R-2", current=900, mrns=[("B", 1000, None)])

        resp = await client.get(f"/api/fuel-consistency/tanks/{above.id}", headers=viewer_headers)
        body = resp.json()
        assert body["difference"] == 100
        assert body["total_mrn_quantity"] == 900
        assert body["is_consistent"] is False
        assert body["severity"] == "critical"
        assert body["mrn_count"] == 1

        resp = await client.get(f"/api/fuel-consistency/tanks/{below.id}", headers=viewer_headers)
        assert resp.json()["difference"] == -100

    async def test_tolerance_can_be_overridden(self, client, viewer_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 999.5, None)])

        resp = await client.get(f"/api/fuel-consistency/tanks/{tank.id}", headers=viewer_headers)
        assert resp.json()["severity"] == "warning"

        resp = await client.get(f"/api/fuel-consistency/tanks/{tank.id}?tolerance=1", headers=viewer_headers)
        assert resp.json()["is_consistent"] is True

    async def test_overview_checks_active_tanks_only(self, client, viewer_headers, make_fixed_tank):
        await make_fixed_tank("R-1", current=500, mrns=[("A", 500, None)])
        await make_fixed_tank("R-2", current=500, mrns=[("B", 400, None)])
        await make_fixed_tank("R-3", current=500, status="INACTIVE")

        resp = await client.get("/api/fuel-consistency/tanks", headers=viewer_headers)
        body = resp.json()
        assert body["summary"]["total"] == 2
        assert body["summary"]["consistent"] == 1
        assert body["summary"]["critical"] == 1
        assert body["summary"]["total_absolute_difference"] == 100
        assert [t["tank_identifier"] for t in body["inconsistent_tanks"]] == ["R-2"]

    async def test_missing_tank_is_404(self, client, viewer_headers):
        resp = await client.get("/api/fuel-consistency/tanks/999", headers=viewer_headers)
        assert resp.status_code == 404

    async def test_check_records_system_logs(self, client, kontrola_headers, make_fixed_tank):
        await make_fixed_tank("R-1", current=500, mrns=[("A", 480, None)])
        await make_fixed_tank("R-2", current=500, mrns=[("B", 500, None)])

        resp = await client.get("/api/fuel-consistency/check", headers=kontrola_headers)
        assert resp.status_code == 200
        assert resp.json()["tanks_checked"] == 2
        assert resp.json()["inconsistent_count"] == 1

        resp = await client.get(
            "/api/fuel-consistency/logs?action=TANK_INCONSISTENCY_DETECTED", headers=kontrola_headers
        )
        logs = resp.json()
        assert len(logs) == 1
        assert logs[0]["severity"] == "WARNING"
        assert logs[0]["details"]["difference"] == 20

        resp = await client.get("/api/fuel-consistency/logs?action=FUEL_CONSISTENCY_CHECK", headers=kontrola_headers)
        assert len(resp.json()) == 1

    async def test_check_is_restricted(self, client, operator_headers):
        resp = await client.get("/api/fuel-consistency/check", headers=operator_headers)
        assert resp.status_code == 403


class TestCorrections:

    async def _correct(self, client, headers, tank_id, action, notes="monthly reconciliation"):
        return await client.post(
            f"/api/fuel-consistency/tanks/{tank_id}/correct",
            json={"action": action, "notes": notes},
            headers=headers,
        )

    async def test_adjust_tank_sets_quantity_to_mrn_total(self, client, admin_headers, make_fixed_tank, fetch):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 950, None)])
        resp = await self._correct(client, admin_headers, tank.id, "adjust_tank")
        assert resp.status_code == 200
        assert resp.json()["before"]["difference"] == 50
        assert resp.json()["after"]["is_consistent"] is True
        assert (await fetch(FixedStorageTankDB, tank.id)).current_quantity_liters == 950

    async def test_adjust_tank_respects_capacity(self, client, admin_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=900, capacity=1000, mrns=[("A", 1200, None)])
        resp = await self._correct(client, admin_headers, tank.id, "adjust_tank")
        assert resp.status_code == 400

    async def test_balancing_mrn_covers_surplus(self, client, kontrola_headers, make_fixed_tank, fetch_mrns):
        first = await make_fixed_tank("R-1", current=1000, mrns=[("A", 700, datetime(2026, 1, 1))])
        second = await make_fixed_tank("R-2", current=100)

        resp = await self._correct(client, kontrola_headers, first.id, "create_balancing_mrn")
        assert resp.status_code == 200
        assert resp.json()["after"]["is_consistent"] is True
        resp = await self._correct(client, kontrola_headers, second.id, "create_balancing_mrn")
        assert resp.status_code == 200

        day = datetime.now().strftime("%Y%m%d")
        mrns = {m.customs_declaration_number: m for m in await fetch_mrns(first.id)}
        assert set(mrns) == {"A", f"BAL-{day}-0001"}
        assert mrns[f"BAL-{day}-0001"].remaining_quantity_liters == 300
        assert (await fetch_mrns(second.id))[0].customs_declaration_number == f"BAL-{day}-0002"

    async def test_balancing_mrn_needs_positive_difference(self, client, admin_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=500, mrns=[("A", 700, None)])
        resp = await self._correct(client, admin_headers, tank.id, "create_balancing_mrn")
        assert resp.status_code == 400

    async def test_adjust_mrn_reduces_newest_first(self, client, admin_headers, make_fixed_tank, fetch_mrns):
        tank = await make_fixed_tank(current=400, mrns=[
            ("OLD", 300, datetime(2026, 1, 1)),
            ("NEW", 200, datetime(2026, 2, 1)),
        ])
        resp = await self._correct(client, admin_headers, tank.id, "adjust_mrn")
        assert resp.status_code == 200
        assert [m.remaining_quantity_liters for m in await fetch_mrns(tank.id)] == [300, 100]

    async def test_adjust_mrn_shortfall_spans_records(self, client, admin_headers, make_fixed_tank, fetch_mrns):
        tank = await make_fixed_tank(current=250, mrns=[
            ("OLD", 300, datetime(2026, 1, 1)),
            ("NEW", 200, datetime(2026, 2, 1)),
        ])
        resp = await self._correct(client, admin_headers, tank.id, "adjust_mrn")
        assert resp.status_code == 200
        assert [m.remaining_quantity_liters for m in await fetch_mrns(tank.id)] == [250, 0]

    async def test_adjust_mrn_surplus_goes_to_newest(self, client, admin_headers, make_fixed_tank, fetch_mrns):
        tank = await make_fixed_tank(current=600, mrns=[
            ("OLD", 300, datetime(2026, 1, 1)),
            ("NEW", 200, datetime(2026, 2, 1)),
        ])
        await self._correct(client, admin_headers, tank.id, "adjust_mrn")
        mrns = await fetch_mrns(tank.id)
        assert [m.remaining_quantity_liters for m in mrns] == [300, 300]
        assert mrns[1].quantity_liters == 300

    async def test_adjust_mrn_with_explicit_quantities(self, client, admin_headers, make_fixed_tank, fetch_mrns):
        tank = await make_fixed_tank(current=400, mrns=[
            ("OLD", 300, datetime(2026, 1, 1)),
            ("NEW", 200, datetime(2026, 2, 1)),
        ])
        old, new = await fetch_mrns(tank.id)

        resp = await client.post(
            f"/api/fuel-consistency/tanks/{tank.id}/correct",
            json={
                "action": "adjust_mrn",
                "notes": "stock count",
                "adjustments": [{"mrn_record_id": old.id, "new_quantity": 250}, {"mrn_record_id": new.id, "new_quantity": 150}],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["after"]["is_consistent"] is True
        assert [m.remaining_quantity_liters for m in await fetch_mrns(tank.id)] == [250, 150]

    async def test_explicit_adjustment_must_belong_to_tank(self, client, admin_headers, make_fixed_tank, fetch_mrns):
        tank = await make_fixed_tank("R-1", current=400, mrns=[("A", 300, None)])
        other = await make_fixed_tank("R-2", current=100, mrns=[("B", 100, None)])
        foreign = (await fetch_mrns(other.id))[0]

        resp = await client.post(
            f"/api/fuel-consistency/tanks/{tank.id}/correct",
            json={"action": "adjust_mrn", "notes": "n", "adjustments": [{"mrn_record_id": foreign.id, "new_quantity": 400}]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert (await fetch_mrns(other.id))[0].remaining_quantity_liters == 100

    @pytest.mark.parametrize("body", [
        {"action": "adjust_mrn", "notes": "n", "adjustments": [{"mrn_record_id": 1, "new_quantity": -5}]},
        {"action": "adjust_tank", "notes": "n", "adjustments": [{"mrn_record_id": 1, "new_quantity": 5}]},
        {"action": "adjust_mrn", "notes": "n", "adjustments": [
            {"mrn_record_id": 1, "new_quantity": 5}, {"mrn_record_id": 1, "new_quantity": 6},
        ]},
    ])
    async def test_invalid_adjustments_fail_validation(self, client, admin_headers, make_fixed_tank, body):
        tank = await make_fixed_tank(current=400, mrns=[("A", 300, None)])
        resp = await client.post(f"/api/fuel-consistency/tanks/{tank.id}/correct", json=body, headers=admin_headers)
        assert resp.status_code == 422

    async def test_adjust_mrn_without_records(self, client, admin_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=100)
        resp = await self._correct(client, admin_headers, tank.id, "adjust_mrn")
        assert resp.status_code == 400

    async def test_consistent_tank_needs_no_correction(self, client, admin_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=100, mrns=[("A", 100, None)])
        resp = await self._correct(client, admin_headers, tank.id, "adjust_tank")
        assert resp.status_code == 400

    async def test_notes_are_mandatory(self, client, admin_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=100)
        resp = await self._correct(client, admin_headers, tank.id, "adjust_tank", notes="  ")
        assert resp.status_code == 422

    async def test_correction_is_logged(self, client, admin_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 990, None)])
        await self._correct(client, admin_headers, tank.id, "adjust_tank")

        resp = await client.get("/api/fuel-consistency/logs?action=CONSISTENCY_CORRECTION", headers=admin_headers)
        assert resp.json()[0]["details"]["tank_id"] == tank.id

        resp = await client.get(
            f"/api/activities/?action_type=CONSISTENCY_CORRECTION&resource_id={tank.id}", headers=admin_headers
        )
        assert resp.json()["total"] == 1

    async def test_operator_cannot_correct(self, client, operator_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=1000)
        resp = await self._correct(client, operator_headers, tank.id, "adjust_tank")
        assert resp.status_code == 403
