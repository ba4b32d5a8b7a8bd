"""Single-use override tokens for drawing from an inconsistent fixed tank."""

from datetime import datetime, timedelta

from sqlalchemy import update

from models import ConsistencyOverrideDB, FixedStorageTankDB, FuelTankDB


async def _issue(client, headers, tank_id, operation_type="TANKER_REFILL", notes="approved by shift lead"):
    return await client.post(
        f"/api/fuel-consistency/tanks/{tank_id}/override",
        json={"operation_type": operation_type, "notes": notes},
        headers=headers,
    )


def _refill(tank_id, qty, token=None):
    body = {"source_type": "fixed", "quantity_liters": qty, "source_fixed_tank_id": tank_id}
    if token:
        body["override_token"] = token
    return body


class TestIssuingOverrides:

    async def test_kontrola_receives_token(self, client, kontrola_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 500, None)])
        resp = await _issue(client, kontrola_headers, tank.id)
        assert resp.status_code == 200
        body = resp.json()
        assert body["override_token"]
        assert body["expires_in"] == 300
        assert body["operation_type"] == "TANKER_REFILL"

    async def test_issuing_is_logged(self, client, admin_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 500, None)])
        await _issue(client, admin_headers, tank.id)
        resp = await client.get("/api/fuel-consistency/logs?action=CONSISTENCY_OVERRIDE", headers=admin_headers)
        logs = resp.json()
        assert len(logs) == 1
        assert logs[0]["severity"] == "WARNING"
        assert logs[0]["details"]["notes"] == "approved by shift lead"

    async def test_operator_cannot_issue(self, client, operator_headers, make_fixed_tank):
        tank = await make_fixed_tank(current=1000)
        resp = await _issue(client, operator_headers, tank.id)
        assert resp.status_code == 403

    async def test_unknown_tank_and_operation(self, client, kontrola_headers, make_fixed_tank):
        resp = await _issue(client, kontrola_headers, 999)
        assert resp.status_code == 404

        tank = await make_fixed_tank(current=1000)
        resp = await _issue(client, kontrola_headers, tank.id, operation_type="AIRCRAFT_FUELING")
        assert resp.status_code == 422
        resp = await _issue(client, kontrola_headers, tank.id, notes="")
        assert resp.status_code == 422


class TestUsingOverrides:

    async def test_token_allows_one_refill(self, client, kontrola_headers, operator_headers, make_fixed_tank, make_tanker, fetch):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 900, None)])
        tanker = await make_tanker()
        token = (await _issue(client, kontrola_headers, tank.id)).json()["override_token"]

        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 300, token), headers=operator_headers)
        assert resp.status_code == 201
        assert (await fetch(FixedStorageTankDB, tank.id)).current_quantity_liters == 700

        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 100, token), headers=operator_headers)
        assert resp.status_code == 409
        assert "already used" in resp.json()["detail"]
        assert (await fetch(FuelTankDB, tanker.id)).current_liters == 300

    async def test_failed_operation_keeps_token_unused(
        self, client, kontrola_headers, operator_headers, make_fixed_tank, make_tanker
    ):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 500, None)])
        tanker = await make_tanker()
        token = (await _issue(client, kontrola_headers, tank.id)).json()["override_token"]

        # tank holds 1000 L but the batches only 500 L
        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 800, token), headers=operator_headers)
        assert resp.status_code == 400
        assert "500.00 L in MRN records" in resp.json()["detail"]

        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 400, token), headers=operator_headers)
        assert resp.status_code == 201

    async def test_token_bound_to_operation(self, client, kontrola_headers, operator_headers, make_fixed_tank, make_tanker):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 900, None)])
        tanker = await make_tanker()
        token = (await _issue(client, kontrola_headers, tank.id, operation_type="FUEL_DRAIN")).json()["override_token"]

        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 100, token), headers=operator_headers)
        assert resp.status_code == 409

        resp = await client.post(
            "/api/fuel/drains/records",
            json={
                "date_time": "2026-05-10T09:00:00", "source_type": "fixed", "source_id": tank.id,
                "quantity_liters": 10, "override_token": token,
            },
            headers=operator_headers,
        )
        assert resp.status_code == 201

    async def test_token_bound_to_tank(self, client, kontrola_headers, operator_headers, make_fixed_tank, make_tanker):
        first = await make_fixed_tank("R-1", current=1000, mrns=[("A", 900, None)])
        second = await make_fixed_tank("R-2", current=1000, mrns=[("B", 900, None)])
        tanker = await make_tanker()
        token = (await _issue(client, kontrola_headers, first.id)).json()["override_token"]

        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(second.id, 100, token), headers=operator_headers)
        assert resp.status_code == 409
        assert "another tank" in resp.json()["detail"]

    async def test_expired_token_rejected(
        self, client, session_maker, kontrola_headers, operator_headers, make_fixed_tank, make_tanker
    ):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 900, None)])
        tanker = await make_tanker()
        token = (await _issue(client, kontrola_headers, tank.id)).json()["override_token"]

        async with session_maker() as s:
            await s.execute(update(ConsistencyOverrideDB).values(expires_at=datetime.now() - timedelta(seconds=1)))
            await s.commit()

        resp = await client.post(f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 100, token), headers=operator_headers)
        assert resp.status_code == 409
        assert "expired" in resp.json()["detail"]

    async def test_login_token_is_not_an_override(self, client, operator_headers, make_fixed_tank, make_tanker):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 900, None)])
        tanker = await make_tanker()
        access_token = operator_headers["Authorization"].split()[1]

        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 100, access_token), headers=operator_headers
        )
        assert resp.status_code == 409

    async def test_consistent_tank_ignores_token(self, client, operator_headers, make_fixed_tank, make_tanker):
        tank = await make_fixed_tank(current=1000, mrns=[("A", 1000, None)])
        tanker = await make_tanker()
        resp = await client.post(
            f"/api/fuel/tanks/{tanker.id}/refills", json=_refill(tank.id, 100, "garbage"), headers=operator_headers
        )
        assert resp.status_code == 201
