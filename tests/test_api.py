from pmstack import __version__


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "version": __version__}


class TestTopologyRouter:
    async def test_reference_topology(self, client):
        resp = await client.get("/api/topology/reference")
        assert resp.status_code == 200
        data = resp.json()
        assert data["phase"] == "finalized"
        assert len(data["resources"]) == 12
        assert data["order"][0] == "patient-manager-vpc"
        assert data["order"][-1] == "api-gateway"

    async def test_reference_requires_jwt_secret(self, client, monkeypatch):
        monkeypatch.delenv("PMSTACK_JWT_SECRET")
        resp = await client.get("/api/topology/reference")
        assert resp.status_code == 422
        assert resp.json()["detail"]["logical_id"] == "auth-service"

    async def test_plan(self, client):
        resp = await client.post(
            "/api/topology/plan",
            json={
                "name": "billing-only",
                "services": [
                    {"logical_id": "billing-service", "image_ref": "billing-service", "ports": [4001, 9001]}
                ],
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "billing-only"
        unit = next(r for r in data["resources"] if r["logical_id"] == "billing-service")
        assert unit["kind"] == "ServiceUnit"
        assert [listener["host_port"] for listener in unit["listeners"]] == [4001, 9001]

    async def test_plan_invalid_port(self, client):
        resp = await client.post(
            "/api/topology/plan",
            json={"services": [{"logical_id": "bad", "image_ref": "bad", "ports": [70000]}]},
        )
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert detail["logical_id"] == "bad"
        assert detail["phase"] == "service_units_built"

    async def test_plan_unknown_database(self, client):
        resp = await client.post(
            "/api/topology/plan",
            json={
                "services": [
                    {"logical_id": "svc", "image_ref": "svc", "ports": [4000], "database": "nope"}
                ]
            },
        )
        assert resp.status_code == 422

    async def test_dry_run(self, client):
        resp = await client.post(
            "/api/topology/dry-run",
            json={
                "databases": [
                    {"logical_id": "patient-service-db", "database_name": "patient-service-db"}
                ],
                "services": [
                    {
                        "logical_id": "patient-service",
                        "image_ref": "patient-service",
                        "ports": [4000],
                        "database": "patient-service-db",
                    }
                ],
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["engine"] == "dry-run"
        assert set(data["statuses"].values()) == {"ready"}
        assert data["outputs"]["patient-service-db"]["endpoint_port"] == "5432"

    async def test_plan_empty_id(self, client):
        resp = await client.post(
            "/api/topology/plan",
            json={"services": [{"logical_id": "", "image_ref": "x", "ports": [4000]}]},
        )
        assert resp.status_code == 422

    async def test_plan_retained_database(self, client):
        resp = await client.post(
            "/api/topology/plan",
            json={
                "databases": [
                    {
                        "logical_id": "auth-service-db",
                        "database_name": "auth-service-db",
                        "removal_policy": "retain",
                    }
                ]
            },
        )
        assert resp.status_code == 200
        db = next(r for r in resp.json()["resources"] if r["logical_id"] == "auth-service-db")
        assert db["removal_policy"] == "retain"

    async def test_malformed_settings(self, client, monkeypatch):
        monkeypatch.setenv("PMSTACK_AVAILABILITY_ZONES", "two")
        resp = await client.post("/api/topology/plan", json={})
        assert resp.status_code == 422
        assert "PMSTACK_AVAILABILITY_ZONES" in resp.json()["detail"]["error"]

    async def test_dry_run_with_teardown(self, client):
        resp = await client.post(
            "/api/topology/dry-run",
            params={"teardown": "true"},
            json={"databases": [{"logical_id": "db", "database_name": "db"}]},
        )
        assert resp.status_code == 200
        teardown = resp.json()["teardown"]
        order = [t["logical_id"] for t in teardown]
        assert set(order) == {"db-health-probe", "patient-management-cluster", "db", "patient-manager-vpc"}
        assert order.index("db-health-probe") < order.index("db")
        assert order[-1] == "patient-manager-vpc"
        assert {t["status"] for t in teardown} == {"success"}

    async def test_dry_run_without_teardown(self, client):
        resp = await client.post("/api/topology/dry-run", json={})
        assert resp.status_code == 200
        assert resp.json()["teardown"] == []
