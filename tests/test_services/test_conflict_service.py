"""
Conflict service tests.

Tests: idempotent upsert, resolution, auto-resolution, listing order,
pre-commit allocation validation.
"""

import uuid
from datetime import date

import pytest

from riskradar.exceptions import (
    AllocationConflictError,
    ConflictNotFoundError,
    InvalidAllocationError,
)
from riskradar.schemas.conflict import AllocationProposal
from riskradar.services.conflict_service import ConflictService
from tests.conftest import NOW


def sep(day: int) -> date:
    return date(2025, 9, day)


SNAPSHOT = [{"project_id": "p1", "task_id": None, "allocation_percentage": 80.0}]


class TestUpsert:
    @pytest.mark.asyncio
    async def test_second_upsert_is_noop(self, db, org_id, now):
        service = ConflictService(now=now)
        resource = uuid.uuid4()

        first, created = await service.upsert_conflict(
            db, org_id, resource, sep(20), 140, "high", SNAPSHOT
        )
        again, created_again = await service.upsert_conflict(
            db, org_id, resource, sep(20), 150, "high", SNAPSHOT
        )

        assert created is True
        assert created_again is False
        assert again.id == first.id
        assert again.total_allocation_percentage == 140

    @pytest.mark.asyncio
    async def test_new_row_after_resolution(self, db, org_id, now):
        service = ConflictService(now=now)
        resource = uuid.uuid4()

        first, _ = await service.upsert_conflict(db, org_id, resource, sep(20), 140, "high", SNAPSHOT)
        await service.resolve_conflict(db, first.id, "alice", note="moved to next sprint")
        second, created = await service.upsert_conflict(
            db, org_id, resource, sep(20), 140, "high", SNAPSHOT
        )

        assert created is True
        assert second.id != first.id
        assert first.resolved is True
        assert first.resolution_note == "moved to next sprint"
        assert first.resolved_at == NOW

    @pytest.mark.asyncio
    async def test_open_conflicts_are_per_organization(self, db, org_id, now):
        service = ConflictService(now=now)
        other_org = uuid.uuid4()
        resource = uuid.uuid4()

        mine, created = await service.upsert_conflict(
            db, org_id, resource, sep(20), 140, "high", SNAPSHOT
        )
        theirs, created_other = await service.upsert_conflict(
            db, other_org, resource, sep(20), 180, "critical", SNAPSHOT
        )

        assert created is True
        assert created_other is True
        assert theirs.id != mine.id

        await service.auto_resolve_cleared(db, org_id, resource, [], sep(18), sep(30))
        assert mine.resolved is True
        assert theirs.resolved is False

    @pytest.mark.asyncio
    async def test_resolve_missing(self, db):
        with pytest.raises(ConflictNotFoundError):
            await ConflictService().resolve_conflict(db, uuid.uuid4(), "alice")


class TestAutoResolve:
    @pytest.mark.asyncio
    async def test_cleared_days_are_resolved(self, db, org_id, now):
        service = ConflictService(now=now)
        resource = uuid.uuid4()
        for day in (19, 20, 21):
            await service.upsert_conflict(db, org_id, resource, sep(day), 140, "high", SNAPSHOT)

        count = await service.auto_resolve_cleared(
            db, org_id, resource, [sep(20)], sep(18), sep(30)
        )
        open_conflicts = await service.get_conflicts(db, org_id, resource_id=resource)

        assert count == 2
        assert [c.conflict_date for c in open_conflicts] == [sep(20)]


class TestListing:
    @pytest.mark.asyncio
    async def test_upcoming_ordered_by_severity_then_date(self, db, org_id, now):
        service = ConflictService(now=now)
        r1, r2 = uuid.uuid4(), uuid.uuid4()
        await service.upsert_conflict(db, org_id, r1, sep(25), 115, "medium", SNAPSHOT)
        await service.upsert_conflict(db, org_id, r1, sep(22), 180, "critical", SNAPSHOT)
        await service.upsert_conflict(db, org_id, r2, sep(19), 115, "medium", SNAPSHOT)
        await service.upsert_conflict(db, org_id, r2, sep(1), 200, "critical", SNAPSHOT)  # past
        await service.upsert_conflict(db, uuid.uuid4(), r2, sep(20), 200, "critical", SNAPSHOT)

        conflicts = await service.get_conflicts(db, org_id)
        assert [(c.severity, c.conflict_date) for c in conflicts] == [
            ("critical", sep(22)),
            ("medium", sep(19)),
            ("medium", sep(25)),
        ]


class TestAllocationCheck:
    @pytest.mark.asyncio
    async def test_conflicting_days_returned(self, db, factory, org_id):
        project = await factory.project(org_id)
        resource = uuid.uuid4()
        await factory.allocation(project, resource, sep(10), sep(20), 80)

        proposal = AllocationProposal(
            resource_id=resource,
            project_id=project.id,
            start_date=sep(18),
            end_date=sep(22),
            allocation_percentage=60,
        )
        check = await ConflictService().check_allocation(db, org_id, proposal)

        assert check.has_conflict
        assert [c.date for c in check.conflicts] == [sep(18), sep(19), sep(20)]
        assert check.max_total == 140
        assert check.conflicts[0].severity == "high"

    @pytest.mark.asyncio
    async def test_ensure_raises_with_days(self, db, factory, org_id):
        project = await factory.project(org_id)
        resource = uuid.uuid4()
        await factory.allocation(project, resource, sep(10), sep(20), 100)

        proposal = AllocationProposal(
            resource_id=resource,
            project_id=project.id,
            start_date=sep(20),
            end_date=sep(21),
            hours_per_day=4,
        )
        with pytest.raises(AllocationConflictError) as exc:
            await ConflictService().ensure_allocation_fits(db, org_id, proposal)

        assert exc.value.status_code == 409
        assert [c["date"] for c in exc.value.conflicts] == ["2025-09-20"]
        assert exc.value.conflicts[0]["total_allocation"] == 150

    @pytest.mark.asyncio
    async def test_editing_existing_allocation(self, db, factory, org_id):
        project = await factory.project(org_id)
        resource = uuid.uuid4()
        stored = await factory.allocation(project, resource, sep(10), sep(20), 80)

        proposal = AllocationProposal(
            allocation_id=stored.id,
            resource_id=resource,
            project_id=project.id,
            start_date=sep(10),
            end_date=sep(20),
            allocation_percentage=100,
        )
        check = await ConflictService().ensure_allocation_fits(db, org_id, proposal)
        assert not check.has_conflict

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"start_date": sep(20), "end_date": sep(10), "allocation_percentage": 50},
            {"start_date": sep(10), "end_date": sep(20), "allocation_percentage": 0},
            {"start_date": sep(10), "end_date": sep(20), "allocation_percentage": 120},
            {"start_date": sep(10), "end_date": sep(20)},
            {"start_date": sep(10), "end_date": sep(20), "hours_per_day": -1},
        ],
    )
    def test_invalid_proposals(self, kwargs):
        proposal = AllocationProposal(resource_id=uuid.uuid4(), project_id=uuid.uuid4(), **kwargs)
        with pytest.raises(InvalidAllocationError):
            ConflictService().validate_proposal(proposal)
