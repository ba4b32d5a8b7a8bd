"""Users, companies, locations and vehicles."""

import pytest


class TestUsers:

    async def test_roles_are_seeded(self, client, admin_headers):
        resp = await client.get("/api/users/roles", headers=admin_headers)
        assert {r["name"] for r in resp.json()} == {
            "ADMIN", "KONTROLA", "FUEL_OPERATOR", "SERVICER", "AERODROM", "CARINA",
        }

    async def test_create_update_delete(self, client, admin_headers):
        resp = await client.post(
            "/api/users/",
            json={"username": "newbie", "password": "secret99", "full_name": "New Bie", "role": "servicer"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        user = resp.json()
        assert user["role"] == "SERVICER"

        resp = await client.put(f"/api/users/{user['id']}", json={"role": "KONTROLA", "is_active": False}, headers=admin_headers)
        assert resp.json()["role"] == "KONTROLA"
        assert resp.json()["is_active"] is False

        resp = await client.delete(f"/api/users/{user['id']}", headers=admin_headers)
        assert resp.status_code == 200
        resp = await client.get(f"/api/users/{user['id']}", headers=admin_headers)
        assert resp.status_code == 404

    async def test_duplicate_username(self, client, admin_headers):
        resp = await client.post(
            "/api/users/", json={"username": "operator", "password": "secret99", "role": "ADMIN"}, headers=admin_headers
        )
        assert resp.status_code == 409

    async def test_unknown_role(self, client, admin_headers):
        resp = await client.post(
            "/api/users/", json={"username": "ghost", "password": "secret99", "role": "PILOT"}, headers=admin_headers
        )
        assert resp.status_code == 400

    async def test_admin_cannot_delete_self(self, client, admin_headers, users):
        resp = await client.delete(f"/api/users/{users['admin'].id}", headers=admin_headers)
        assert resp.status_code == 400


class TestCompaniesAndLocations:

    async def test_company_location_chain(self, client, admin_headers, viewer_headers):
        resp = await client.post("/api/companies/", json={"name": "Airport Services"}, headers=admin_headers)
        assert resp.status_code == 201
        company_id = resp.json()["id"]

        resp = await client.post(
            "/api/locations/", json={"name": "Apron 1", "company_id": company_id}, headers=admin_headers
        )
        assert resp.status_code == 201
        location_id = resp.json()["id"]

        resp = await client.get(f"/api/locations/?company_id={company_id}", headers=viewer_headers)
        assert [l["name"] for l in resp.json()] == ["Apron 1"]

        resp = await client.delete(f"/api/companies/{company_id}", headers=admin_headers)
        assert resp.status_code == 400

        resp = await client.delete(f"/api/locations/{location_id}", headers=admin_headers)
        assert resp.status_code == 200
        resp = await client.delete(f"/api/companies/{company_id}", headers=admin_headers)
        assert resp.status_code == 200

    async def test_duplicate_company(self, client, admin_headers):
        await client.post("/api/companies/", json={"name": "Dup"}, headers=admin_headers)
        resp = await client.post("/api/companies/", json={"name": "Dup"}, headers=admin_headers)
        assert resp.status_code == 409

    async def test_location_needs_existing_company(self, client, admin_headers):
        resp = await client.post("/api/locations/", json={"name": "Nowhere", "company_id": 999}, headers=admin_headers)
        assert resp.status_code == 404

    async def test_only_admin_writes_companies(self, client, kontrola_headers):
        resp = await client.post("/api/companies/", json={"name": "Nope"}, headers=kontrola_headers)
        assert resp.status_code == 403


class TestVehicles:

    @pytest.fixture
    async def company(self, client, admin_headers):
        resp = await client.post("/api/companies/", json={"name": "Fleet Co"}, headers=admin_headers)
        return resp.json()

    async def _vehicle(self, client, headers, company_id, plate="A12-K-345", **extra):
        body = {"vehicle_name": "Refueller", "license_plate": plate, "company_id": company_id}
        body.update(extra)
        return await client.post("/api/vehicles/", json=body, headers=headers)

    async def test_vehicle_lifecycle(self, client, admin_headers, company):
        resp = await self._vehicle(client, admin_headers, company["id"])
        assert resp.status_code == 201
        vehicle = resp.json()

        resp = await client.post(
            f"/api/vehicles/{vehicle['id']}/service-records",
            json={"service_date": "2026-02-01", "service_type": "Filter change", "cost": 120.5},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        record_id = resp.json()["id"]

        resp = await client.get(f"/api/vehicles/{vehicle['id']}/service-records", headers=admin_headers)
        assert [r["service_type"] for r in resp.json()] == ["Filter change"]

        resp = await client.delete(f"/api/vehicles/{vehicle['id']}/service-records/{record_id}", headers=admin_headers)
        assert resp.status_code == 200

        resp = await client.delete(f"/api/vehicles/{vehicle['id']}", headers=admin_headers)
        assert resp.status_code == 200
        resp = await client.get(f"/api/vehicles/{vehicle['id']}", headers=admin_headers)
        assert resp.status_code == 404

    async def test_duplicate_plate(self, client, admin_headers, company):
        await self._vehicle(client, admin_headers, company["id"])
        resp = await self._vehicle(client, admin_headers, company["id"])
        assert resp.status_code == 409

    async def test_location_blocks_delete_while_vehicle_assigned(self, client, admin_headers, company):
        location = (await client.post(
            "/api/locations/", json={"name": "Hangar", "company_id": company["id"]}, headers=admin_headers
        )).json()
        await self._vehicle(client, admin_headers, company["id"], location_id=location["id"])

        resp = await client.delete(f"/api/locations/{location['id']}", headers=admin_headers)
        assert resp.status_code == 400

    async def test_filter_by_status(self, client, admin_headers, viewer_headers, company):
        await self._vehicle(client, admin_headers, company["id"], plate="P1")
        await self._vehicle(client, admin_headers, company["id"], plate="P2", status="SERVICE")

        resp = await client.get("/api/vehicles/?status=SERVICE", headers=viewer_headers)
        assert [v["license_plate"] for v in resp.json()] == ["P2"]

    async def test_fuel_operator_cannot_manage_fleet(self, client, operator_headers, company):
        resp = await self._vehicle(client, operator_headers, company["id"])
        assert resp.status_code == 403
