# tests/domains/test_wkp_n.py

"""
'wkp' 도메인 API (작업장, 작업자 배치, 통계, 활동 로그, 지오펜스)에 대한 통합 테스트입니다.
"""

from datetime import date

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.att import models as att_models
from tests.conftest import WORKER_DAILY_RATE


def _workplaces_url(org_id: int) -> str:
    return f"/api/v1/orgs/{org_id}/workplaces"


# =============================================================================
# 1. 작업장 CRUD
# =============================================================================
@pytest.mark.asyncio
async def test_list_workplaces(worker_client: AsyncClient, outsider_client: AsyncClient, test_org, test_workplace):
    response = await worker_client.get(_workplaces_url(test_org.id))
    assert response.status_code == 200
    assert [wp["name"] for wp in response.json()] == ["Site A"]

    response = await outsider_client.get(_workplaces_url(test_org.id))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_workplace_assigns_creator_as_supervisor(owner_client: AsyncClient, test_org, test_owner):
    response = await owner_client.post(_workplaces_url(test_org.id), json={
        "name": "Farm B",
        "type": "FARM",
        "latitude": 37.56,
        "longitude": 126.97,
        "start_date": "2024-03-01",
        "end_date": "2024-12-31",
    })

    assert response.status_code == 201
    workplace = response.json()
    assert workplace["org_id"] == test_org.id
    assert workplace["created_by_id"] == test_owner.id

    response = await owner_client.get(f"{_workplaces_url(test_org.id)}/{workplace['id']}/workers")
    assert response.status_code == 200
    assert [(w["user_id"], w["role"]) for w in response.json()] == [(test_owner.id, "SUPERVISOR")]


@pytest.mark.asyncio
async def test_create_workplace_requires_org_admin(manager_client: AsyncClient, test_org):
    response = await manager_client.post(_workplaces_url(test_org.id), json={"name": "Nope"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_workplace_rejects_inverted_dates(owner_client: AsyncClient, test_org):
    response = await owner_client.post(_workplaces_url(test_org.id), json={
        "name": "Backwards",
        "start_date": "2024-05-01",
        "end_date": "2024-04-01",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_read_workplace_not_found(worker_client: AsyncClient, test_org, test_workplace):
    response = await worker_client.get(f"{_workplaces_url(test_org.id)}/{test_workplace.id}")
    assert response.status_code == 200

    response = await worker_client.get(f"{_workplaces_url(test_org.id)}/99999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Workplace not found"


@pytest.mark.asyncio
async def test_update_workplace_checks_merged_dates(owner_client: AsyncClient, test_org, test_workplace):
    url = f"{_workplaces_url(test_org.id)}/{test_workplace.id}"

    response = await owner_client.patch(url, json={"start_date": "2024-03-01", "status": "ON_HOLD"})
    assert response.status_code == 200
    assert response.json()["status"] == "ON_HOLD"
    assert response.json()["name"] == "Site A"

    # 저장된 start_date보다 이른 end_date만 보내도 거부합니다.
    response = await owner_client.patch(url, json={"end_date": "2024-02-01"})
    assert response.status_code == 400
    assert response.json()["detail"] == "end_date must not be earlier than start_date"


@pytest.mark.asyncio
async def test_delete_workplace_detaches_attendance(
    owner_client: AsyncClient, db_session: AsyncSession, test_org, test_workplace, test_worker
):
    record = att_models.Attendance(
        user_id=test_worker.id,
        org_id=test_org.id,
        workplace_id=test_workplace.id,
        work_date=date(2024, 3, 14),
        status=att_models.AttendanceStatus.PRESENT,
    )
    db_session.add(record)
    await db_session.commit()

    response = await owner_client.delete(f"{_workplaces_url(test_org.id)}/{test_workplace.id}")
    assert response.status_code == 204

    await db_session.refresh(record)
    assert record.workplace_id is None
    response = await owner_client.get(f"{_workplaces_url(test_org.id)}/{test_workplace.id}")
    assert response.status_code == 404


# =============================================================================
# 2. 작업자 배치
# =============================================================================
@pytest.mark.asyncio
async def test_list_workers_requires_supervisor(
    manager_client: AsyncClient, worker_client: AsyncClient, outsider_client: AsyncClient,
    test_org, test_workplace, test_manager, test_worker,
):
    url = f"{_workplaces_url(test_org.id)}/{test_workplace.id}/workers"

    response = await manager_client.get(url)
    assert response.status_code == 200
    workers = {w["user_id"]: w for w in response.json()}
    assert set(workers) == {test_manager.id, test_worker.id}
    assert workers[test_worker.id]["daily_rate"] == WORKER_DAILY_RATE

    response = await worker_client.get(url)
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient workplace privileges."

    response = await outsider_client.get(url)
    assert response.status_code == 403
    assert response.json()["detail"] == "You are not assigned to this workplace."


@pytest.mark.asyncio
async def test_assign_workers(manager_client: AsyncClient, test_org, test_workplace, test_owner, test_worker):
    url = f"{_workplaces_url(test_org.id)}/{test_workplace.id}/workers"

    response = await manager_client.post(url, json={
        "user_ids": [test_owner.id, test_worker.id],
        "role": "WORKER",
        "daily_rate": 150,
    })

    assert response.status_code == 201
    assert response.json() == {"assigned": [test_owner.id], "reactivated": [], "skipped": [test_worker.id]}


@pytest.mark.asyncio
async def test_assign_rejects_non_members(manager_client: AsyncClient, test_org, test_workplace, test_outsider):
    response = await manager_client.post(
        f"{_workplaces_url(test_org.id)}/{test_workplace.id}/workers",
        json={"user_ids": [test_outsider.id]},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == f"Users are not active members of this organization: [{test_outsider.id}]"


@pytest.mark.asyncio
async def test_supervisor_cannot_grant_supervisor(manager_client: AsyncClient, test_org, test_workplace, test_owner):
    response = await manager_client.post(
        f"{_workplaces_url(test_org.id)}/{test_workplace.id}/workers",
        json={"user_ids": [test_owner.id], "role": "SUPERVISOR"},
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Role escalation attempt: SUPERVISOR cannot grant SUPERVISOR."


@pytest.mark.asyncio
async def test_superadmin_assigns_workplace_manager(
    superadmin_client: AsyncClient, test_org, test_workplace, test_owner
):
    response = await superadmin_client.post(
        f"{_workplaces_url(test_org.id)}/{test_workplace.id}/workers",
        json={"user_ids": [test_owner.id], "role": "WORKPLACE_MANAGER"},
    )
    assert response.status_code == 201
    assert response.json()["assigned"] == [test_owner.id]


@pytest.mark.asyncio
async def test_update_worker(manager_client: AsyncClient, test_org, test_workplace, test_manager, test_worker):
    base = f"{_workplaces_url(test_org.id)}/{test_workplace.id}/workers"

    response = await manager_client.patch(f"{base}/{test_worker.id}", json={"daily_rate": 250})
    assert response.status_code == 200
    assert response.json()["daily_rate"] == 250
    assert response.json()["role"] == "WORKER"

    response = await manager_client.patch(f"{base}/{test_worker.id}", json={"role": "SUPERVISOR"})
    assert response.status_code == 403

    # 동급(자기 자신 포함)은 변경할 수 없습니다.
    response = await manager_client.patch(f"{base}/{test_manager.id}", json={"daily_rate": 999})
    assert response.status_code == 403

    response = await manager_client.patch(f"{base}/99999", json={"daily_rate": 1})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unassign_and_reassign_worker(
    manager_client: AsyncClient, worker_client: AsyncClient, test_org, test_workplace, test_worker
):
    base = f"{_workplaces_url(test_org.id)}/{test_workplace.id}/workers"

    response = await manager_client.delete(f"{base}/{test_worker.id}")
    assert response.status_code == 204

    response = await manager_client.get(base)
    assert test_worker.id not in [w["user_id"] for w in response.json()]

    # 해제된 작업자는 작업장 지오펜스를 볼 수 없습니다.
    response = await worker_client.get(f"{_workplaces_url(test_org.id)}/{test_workplace.id}/geofence")
    assert response.status_code == 403

    response = await manager_client.post(base, json={"user_ids": [test_worker.id], "daily_rate": 180})
    assert response.status_code == 201
    assert response.json()["reactivated"] == [test_worker.id]


# =============================================================================
# 3. 통계 / 활동 로그
# =============================================================================
@pytest.mark.asyncio
async def test_workplace_stats(
    manager_client: AsyncClient, worker_client: AsyncClient, test_org, test_workplace
):
    response = await worker_client.post("/api/v1/attendance/clock-in", json={"workplace_id": test_workplace.id})
    assert response.status_code == 200

    response = await manager_client.get(f"{_workplaces_url(test_org.id)}/{test_workplace.id}/stats")

    assert response.status_code == 200
    stats = response.json()
    assert stats.pop("last_calculated").startswith("2024-03-15T09:00:00")
    assert stats == {
        "workplace_id": test_workplace.id,
        "date": "2024-03-15",
        "headcount": 2,
        "present_today": 1,
        "attendance_rate": 50,
        "pending_approvals": 1,
        "labor_cost": 0.0,
        "total_spent": 0.0,
        "budget": None,
        "budget_remaining": None,
    }


@pytest.mark.asyncio
async def test_workplace_stats_budget_remaining(
    owner_client: AsyncClient, manager_client: AsyncClient, test_org, test_workplace, test_worker
):
    url = f"{_workplaces_url(test_org.id)}/{test_workplace.id}"
    assert (await owner_client.patch(url, json={"budget": 1000.0})).status_code == 200
    response = await manager_client.post(f"/api/v1/orgs/{test_org.id}/attendance", json={
        "user_id": test_worker.id,
        "workplace_id": test_workplace.id,
        "date": "2024-03-14",
        "hours_worked": 8,
        "daily_rate": 200.0,
    })
    assert response.status_code == 201

    stats = (await manager_client.get(f"{url}/stats")).json()
    assert stats["budget"] == 1000.0
    assert stats["total_spent"] == 200.0
    assert stats["labor_cost"] == 200.0
    assert stats["budget_remaining"] == 800.0


@pytest.mark.asyncio
async def test_workplace_stats_forbidden_for_worker(worker_client: AsyncClient, test_org, test_workplace):
    response = await worker_client.get(f"{_workplaces_url(test_org.id)}/{test_workplace.id}/stats")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_workplace_activity(
    manager_client: AsyncClient, worker_client: AsyncClient, frozen_clock, test_org, test_workplace, test_worker
):
    assert (await worker_client.post("/api/v1/attendance/clock-in", json={"workplace_id": test_workplace.id})).status_code == 200

    response = await manager_client.get(f"{_workplaces_url(test_org.id)}/{test_workplace.id}/activity")

    assert response.status_code == 200
    events = response.json()
    types = [event["type"] for event in events]
    assert "CLOCK_IN" in types
    assert types.count("ASSIGNED") == 2
    clock_in = next(event for event in events if event["type"] == "CLOCK_IN")
    assert clock_in["user_id"] == test_worker.id
    assert clock_in["subject_name"] == test_worker.name
    assert clock_in["meta"]["date"] == "2024-03-15"

    response = await manager_client.get(
        f"{_workplaces_url(test_org.id)}/{test_workplace.id}/activity", params={"limit": 1}
    )
    assert len(response.json()) == 1


# =============================================================================
# 4. 지오펜스
# =============================================================================
@pytest.mark.asyncio
async def test_geofence_lifecycle(
    manager_client: AsyncClient, worker_client: AsyncClient, test_org, test_workplace, test_manager
):
    url = f"{_workplaces_url(test_org.id)}/{test_workplace.id}/geofence"

    response = await worker_client.get(url)
    assert response.status_code == 404
    assert response.json()["detail"] == "Geofence not set for this workplace"

    response = await manager_client.put(url, json={"latitude": 37.5, "longitude": 127.0, "radius_meters": 150})
    assert response.status_code == 200
    assert response.json()["set_by_id"] == test_manager.id

    response = await manager_client.put(url, json={"latitude": 37.5, "longitude": 127.0, "radius_meters": 300})
    assert response.status_code == 200

    response = await worker_client.get(url)
    assert response.status_code == 200
    assert response.json()["radius_meters"] == 300

    response = await worker_client.put(url, json={"latitude": 0, "longitude": 0, "radius_meters": 10})
    assert response.status_code == 403

    assert (await manager_client.delete(url)).status_code == 204
    assert (await worker_client.get(url)).status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"latitude": 91, "longitude": 0, "radius_meters": 10},
    {"latitude": 0, "longitude": 181, "radius_meters": 10},
    {"latitude": 0, "longitude": 0, "radius_meters": 0},
])
async def test_geofence_validation(manager_client: AsyncClient, test_org, test_workplace, payload):
    response = await manager_client.put(f"{_workplaces_url(test_org.id)}/{test_workplace.id}/geofence", json=payload)
    assert response.status_code == 422
