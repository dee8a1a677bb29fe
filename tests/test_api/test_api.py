"""
HTTP API tests.

Tests: authentication, signal listing and lifecycle, project risk profile
and on-demand scan, conflict listing/resolution, allocation pre-check,
threshold overrides, tenant scoping.
"""

import uuid
from datetime import date, timedelta

import pytest

from riskradar.services.conflict_service import ConflictService
from tests.conftest import TODAY

FAR_FUTURE = date(2099, 1, 1)


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_health_is_public(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_missing_token_rejected(self, client):
        response = await client.get("/api/v1/signals")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, client):
        response = await client.get(
            "/api/v1/signals", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers.get("X-Request-ID") == "req-123"


class TestSignalEndpoints:
    @pytest.mark.asyncio
    async def test_list_only_own_active_signals(self, client, auth_headers, factory, org_id):
        project = await factory.project(org_id)
        mine = await factory.signal(project)
        await factory.signal(project, status="resolved")
        await factory.signal(await factory.project(uuid.uuid4()))

        response = await client.get("/api/v1/signals", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["signals"][0]["id"] == str(mine.id)

    @pytest.mark.asyncio
    async def test_filter_by_type(self, client, auth_headers, factory, org_id):
        project = await factory.project(org_id)
        await factory.signal(project, "budget_variance")
        await factory.signal(project, "scope_creep")

        response = await client.get(
            "/api/v1/signals", params={"signal_type": "scope_creep"}, headers=auth_headers
        )
        assert [s["signal_type"] for s in response.json()["signals"]] == ["scope_creep"]

    @pytest.mark.asyncio
    async def test_acknowledge_records_caller(self, client, auth_headers, factory, org_id, user_id):
        project = await factory.project(org_id)
        signal = await factory.signal(project)

        response = await client.post(
            f"/api/v1/signals/{signal.id}/acknowledge", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "acknowledged"
        assert response.json()["acknowledged_by"] == user_id

        listing = await client.get("/api/v1/signals", headers=auth_headers)
        assert listing.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_acknowledge_missing_is_404(self, client, auth_headers):
        response = await client.post(
            f"/api/v1/signals/{uuid.uuid4()}/acknowledge", headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "E4000"

    @pytest.mark.asyncio
    async def test_other_tenant_signal_is_404(self, client, auth_headers, factory):
        foreign = await factory.signal(await factory.project(uuid.uuid4()))
        response = await client.post(
            f"/api/v1/signals/{foreign.id}/resolve", headers=auth_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_stats(self, client, auth_headers, factory, org_id):
        project = await factory.project(org_id)
        await factory.signal(project, severity="high")
        await factory.signal(project, severity="low", status="resolved")

        body = (await client.get("/api/v1/signals/stats", headers=auth_headers)).json()
        assert body["total_risks"] == 2
        assert body["resolved_risks"] == 1
        assert body["severity_breakdown"]["high"] == 1


class TestProjectEndpoints:
    @pytest.mark.asyncio
    async def test_risk_profile(self, client, auth_headers, factory, org_id):
        project = await factory.project(org_id, name="Apollo")
        await factory.signal(project, "budget_variance", "critical", "CRITICAL")

        response = await client.get(
            f"/api/v1/projects/{project.id}/risk-profile", headers=auth_headers
        )
        assert response.status_code == 200
        body = response.json()
        assert body["project_name"] == "Apollo"
        assert body["overall_risk_score"] == 5
        assert body["severity_breakdown"]["CRITICAL"] == 1

    @pytest.mark.asyncio
    async def test_risk_profile_unknown_project(self, client, auth_headers):
        response = await client.get(
            f"/api/v1/projects/{uuid.uuid4()}/risk-profile", headers=auth_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_scan_persists_signals(self, client, auth_headers, factory, org_id):
        project = await factory.project(org_id, end_date=FAR_FUTURE)
        await factory.work_item(project, status="done", effort_points=8)
        await factory.budget(project, planned=1000, actual=1500)

        response = await client.post(f"/api/v1/projects/{project.id}/scan", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["findings"] == 1
        signal = body["signals"][0]
        assert signal["signal_type"] == "budget_variance"
        assert signal["risk_level"] == "RED"
        assert signal["details"]["variance_percent"] == 50

        listing = await client.get("/api/v1/signals", headers=auth_headers)
        assert listing.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_scan_other_tenant_project_is_404(self, client, auth_headers, factory):
        foreign = await factory.project(uuid.uuid4())
        response = await client.post(f"/api/v1/projects/{foreign.id}/scan", headers=auth_headers)
        assert response.status_code == 404


class TestConflictEndpoints:
    @pytest.mark.asyncio
    async def test_list_and_resolve(self, client, auth_headers, session_factory, org_id, user_id):
        resource = uuid.uuid4()
        snapshot = [{"project_id": "p1", "task_id": None, "allocation_percentage": 140.0}]
        async with session_factory() as session:
            conflict, _ = await ConflictService().upsert_conflict(
                session, org_id, resource, TODAY + timedelta(days=1), 140, "high", snapshot
            )
            await session.commit()

        listing = await client.get(
            "/api/v1/conflicts", params={"resource_id": str(resource)}, headers=auth_headers
        )
        assert listing.json()["total"] == 1

        response = await client.post(
            f"/api/v1/conflicts/{conflict.id}/resolve",
            json={"note": "split across two sprints"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["resolved"] is True
        assert response.json()["resolved_by"] == user_id
        assert response.json()["resolution_note"] == "split across two sprints"

        listing = await client.get(
            "/api/v1/conflicts", params={"resource_id": str(resource)}, headers=auth_headers
        )
        assert listing.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_resolve_missing_is_404(self, client, auth_headers):
        response = await client.post(
            f"/api/v1/conflicts/{uuid.uuid4()}/resolve", headers=auth_headers
        )
        assert response.status_code == 404


class TestAllocationCheck:
    @pytest.mark.asyncio
    async def test_fitting_allocation_passes(self, client, auth_headers, factory, org_id):
        project = await factory.project(org_id)
        resource = uuid.uuid4()
        await factory.allocation(project, resource, TODAY, TODAY + timedelta(days=5), 50)

        response = await client.post(
            "/api/v1/conflicts/check",
            json={
                "resource_id": str(resource),
                "project_id": str(project.id),
                "start_date": TODAY.isoformat(),
                "end_date": (TODAY + timedelta(days=5)).isoformat(),
                "allocation_percentage": 50,
            },
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["has_conflict"] is False

    @pytest.mark.asyncio
    async def test_over_capacity_is_409_with_days(self, client, auth_headers, factory, org_id):
        project = await factory.project(org_id)
        resource = uuid.uuid4()
        await factory.allocation(project, resource, TODAY, TODAY + timedelta(days=1), 80)

        response = await client.post(
            "/api/v1/conflicts/check",
            json={
                "resource_id": str(resource),
                "project_id": str(project.id),
                "start_date": (TODAY + timedelta(days=1)).isoformat(),
                "end_date": (TODAY + timedelta(days=3)).isoformat(),
                "allocation_percentage": 40,
            },
            headers=auth_headers,
        )
        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "E6002"
        conflicts = body["details"]["conflicts"]
        assert [c["date"] for c in conflicts] == [(TODAY + timedelta(days=1)).isoformat()]
        assert conflicts[0]["total_allocation"] == 120

    @pytest.mark.asyncio
    async def test_reversed_dates_are_422(self, client, auth_headers):
        response = await client.post(
            "/api/v1/conflicts/check",
            json={
                "resource_id": str(uuid.uuid4()),
                "project_id": str(uuid.uuid4()),
                "start_date": "2025-09-20",
                "end_date": "2025-09-10",
                "allocation_percentage": 50,
            },
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["code"] == "E6001"


class TestThresholdEndpoints:
    @pytest.mark.asyncio
    async def test_defaults_then_override(self, client, auth_headers):
        defaults = (await client.get("/api/v1/thresholds", headers=auth_headers)).json()
        assert defaults["budget_variance_percent"] == 20

        response = await client.put(
            "/api/v1/thresholds",
            json={"budget_variance_percent": 35},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["budget_variance_percent"] == 35
        assert response.json()["scope_creep_tasks"] == defaults["scope_creep_tasks"]

        current = (await client.get("/api/v1/thresholds", headers=auth_headers)).json()
        assert current["budget_variance_percent"] == 35

    @pytest.mark.asyncio
    async def test_invalid_override_rejected(self, client, auth_headers):
        response = await client.put(
            "/api/v1/thresholds",
            json={"schedule_completion_threshold": 150},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["code"] == "E6000"

        current = (await client.get("/api/v1/thresholds", headers=auth_headers)).json()
        assert current["schedule_completion_threshold"] == 50
