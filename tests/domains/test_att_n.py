# tests/domains/test_att_n.py

"""
'att' 도메인 API에 대한 통합 테스트입니다.

- 관리자 출석 기록(단건/일괄)과 upsert 동작
- 작업장 출석부 제출
- 승인/반려 워크플로우
- 작업자 셀프 출퇴근과 근무시간/지급액 계산
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from tests.conftest import WORKER_DAILY_RATE


def _attendance_url(org_id: int) -> str:
    return f"/api/v1/orgs/{org_id}/attendance"


CLOCK_IN_URL = "/api/v1/attendance/clock-in"
CLOCK_OUT_URL = "/api/v1/attendance/clock-out"
STATUS_URL = "/api/v1/attendance/status"


# =============================================================================
# 1. 관리자 출석 기록
# =============================================================================
@pytest.mark.asyncio
async def test_mark_attendance_is_approved_immediately(
    manager_client: AsyncClient, test_org, test_workplace, test_manager, test_worker
):
    response = await manager_client.post(_attendance_url(test_org.id), json={
        "user_id": test_worker.id,
        "workplace_id": test_workplace.id,
        "date": "2024-03-14",
        "status": "PRESENT",
        "hours_worked": 8,
        "daily_rate": WORKER_DAILY_RATE,
        "shift_label": "DAY",
    })

    assert response.status_code == 201
    record = response.json()
    assert record["work_date"] == "2024-03-14"
    assert record["approval_status"] == "APPROVED"
    assert record["amount_earned"] == 200.0
    assert record["marked_by_id"] == test_manager.id
    assert record["approved_by_id"] == test_manager.id
    assert record["shift_label"] == "DAY"


@pytest.mark.asyncio
async def test_mark_attendance_twice_updates_same_record(manager_client: AsyncClient, test_org, test_worker):
    url = _attendance_url(test_org.id)
    first = await manager_client.post(url, json={"user_id": test_worker.id, "date": "2024-03-14", "status": "ABSENT"})
    second = await manager_client.post(url, json={"user_id": test_worker.id, "date": "2024-03-14", "status": "LATE"})

    assert first.status_code == second.status_code == 201
    assert first.json()["id"] == second.json()["id"]
    assert second.json()["status"] == "LATE"
    assert second.json()["workplace_id"] is None


@pytest.mark.asyncio
async def test_bulk_mark_counts_created_and_updated(manager_client: AsyncClient, test_org, test_manager, test_worker):
    response = await manager_client.post(f"{_attendance_url(test_org.id)}/bulk", json={"records": [
        {"user_id": test_worker.id, "date": "2024-03-13", "status": "PRESENT"},
        {"user_id": test_manager.id, "date": "2024-03-13", "status": "ON_LEAVE"},
        # 같은 요청 안에서 같은 키가 다시 나오면 갱신으로 처리됩니다.
        {"user_id": test_worker.id, "date": "2024-03-13", "status": "HALF_DAY"},
    ]})

    assert response.status_code == 201
    data = response.json()
    assert (data["created"], data["updated"]) == (2, 1)
    assert len(data["records"]) == 3
    assert data["records"][0]["id"] == data["records"][2]["id"]
    assert data["records"][2]["status"] == "HALF_DAY"


@pytest.mark.asyncio
async def test_bulk_mark_is_all_or_nothing(manager_client: AsyncClient, test_org, test_worker, test_outsider):
    response = await manager_client.post(f"{_attendance_url(test_org.id)}/bulk", json={"records": [
        {"user_id": test_worker.id, "date": "2024-03-13"},
        {"user_id": test_outsider.id, "date": "2024-03-13"},
    ]})

    assert response.status_code == 400
    assert response.json()["detail"] == f"Users are not active members of this organization: [{test_outsider.id}]"

    response = await manager_client.get(_attendance_url(test_org.id))
    assert response.json() == []


@pytest.mark.asyncio
async def test_mark_with_unknown_workplace(manager_client: AsyncClient, test_org, test_worker):
    response = await manager_client.post(_attendance_url(test_org.id), json={
        "user_id": test_worker.id, "workplace_id": 99999, "date": "2024-03-14",
    })
    assert response.status_code == 404
    assert response.json()["detail"] == "Workplace 99999 not found"


@pytest.mark.asyncio
async def test_mark_validation(manager_client: AsyncClient, test_org, test_worker):
    url = _attendance_url(test_org.id)
    assert (await manager_client.post(url, json={"user_id": test_worker.id, "date": "2024-03-14", "hours_worked": 25})).status_code == 422
    assert (await manager_client.post(url, json={"user_id": test_worker.id, "date": "not-a-date"})).status_code == 422
    assert (await manager_client.post(f"{url}/bulk", json={"records": []})).status_code == 422


@pytest.mark.asyncio
async def test_member_cannot_mark_attendance(worker_client: AsyncClient, test_org, test_worker):
    response = await worker_client.post(_attendance_url(test_org.id), json={"user_id": test_worker.id, "date": "2024-03-14"})
    assert response.status_code == 403


# =============================================================================
# 2. 조회 / 수정 / 삭제
# =============================================================================
@pytest.mark.asyncio
async def test_list_attendance_filters(manager_client: AsyncClient, test_org, test_manager, test_worker):
    await manager_client.post(f"{_attendance_url(test_org.id)}/bulk", json={"records": [
        {"user_id": test_worker.id, "date": "2024-03-01", "status": "PRESENT"},
        {"user_id": test_worker.id, "date": "2024-03-10", "status": "ABSENT"},
        {"user_id": test_manager.id, "date": "2024-03-10", "status": "PRESENT"},
    ]})
    url = _attendance_url(test_org.id)

    response = await manager_client.get(url, params={"user_id": test_worker.id})
    assert len(response.json()) == 2

    response = await manager_client.get(url, params={"status": "ABSENT"})
    assert [(r["user_id"], r["work_date"]) for r in response.json()] == [(test_worker.id, "2024-03-10")]

    response = await manager_client.get(url, params={"start_date": "2024-03-05", "end_date": "2024-03-10"})
    assert len(response.json()) == 2

    response = await manager_client.get(url, params={"approval_status": "PENDING"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_update_attendance_recomputes_amount(manager_client: AsyncClient, test_org, test_workplace, test_worker):
    created = await manager_client.post(_attendance_url(test_org.id), json={
        "user_id": test_worker.id, "workplace_id": test_workplace.id, "date": "2024-03-14",
        "hours_worked": 8, "daily_rate": WORKER_DAILY_RATE,
    })
    record_id = created.json()["id"]

    response = await manager_client.patch(f"{_attendance_url(test_org.id)}/{record_id}", json={"hours_worked": 4})

    assert response.status_code == 200
    assert response.json()["hours_worked"] == 4
    assert response.json()["amount_earned"] == 100.0

    response = await manager_client.get(f"{_attendance_url(test_org.id)}/{record_id}")
    assert response.status_code == 200
    assert response.json()["amount_earned"] == 100.0


@pytest.mark.asyncio
async def test_delete_attendance_requires_admin(
    manager_client: AsyncClient, owner_client: AsyncClient, test_org, test_worker
):
    created = await manager_client.post(_attendance_url(test_org.id), json={"user_id": test_worker.id, "date": "2024-03-14"})
    url = f"{_attendance_url(test_org.id)}/{created.json()['id']}"

    assert (await manager_client.delete(url)).status_code == 403
    assert (await owner_client.delete(url)).status_code == 204
    response = await owner_client.get(url)
    assert response.status_code == 404
    assert response.json()["detail"] == "Attendance record not found"


@pytest.mark.asyncio
async def test_attendance_of_other_org_is_not_found(
    manager_client: AsyncClient, outsider_client: AsyncClient, test_org, test_worker
):
    created = await manager_client.post(_attendance_url(test_org.id), json={"user_id": test_worker.id, "date": "2024-03-14"})
    other_org = (await outsider_client.post("/api/v1/orgs", json={"name": "Other Org"})).json()

    response = await outsider_client.get(f"{_attendance_url(other_org['id'])}/{created.json()['id']}")
    assert response.status_code == 404


# =============================================================================
# 3. 작업장 출석부
# =============================================================================
@pytest.mark.asyncio
async def test_submit_sheet_copies_assignment_rate(manager_client: AsyncClient, test_org, test_workplace, test_worker):
    response = await manager_client.post(
        f"/api/v1/orgs/{test_org.id}/workplaces/{test_workplace.id}/attendance/sheet",
        json={"date": "2024-03-14", "entries": [
            {"user_id": test_worker.id, "status": "PRESENT", "hours_worked": 8, "shift_label": "DAY"},
        ]},
    )

    assert response.status_code == 201
    data = response.json()
    assert (data["created"], data["updated"]) == (1, 0)
    record = data["records"][0]
    assert record["workplace_id"] == test_workplace.id
    assert record["daily_rate"] == WORKER_DAILY_RATE
    assert record["amount_earned"] == 200.0
    assert record["approval_status"] == "APPROVED"


@pytest.mark.asyncio
async def test_submit_sheet_rejects_unassigned_users(manager_client: AsyncClient, test_org, test_workplace, test_owner):
    response = await manager_client.post(
        f"/api/v1/orgs/{test_org.id}/workplaces/{test_workplace.id}/attendance/sheet",
        json={"date": "2024-03-14", "entries": [{"user_id": test_owner.id}]},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == f"Users are not assigned to this workplace: [{test_owner.id}]"


@pytest.mark.asyncio
async def test_submit_sheet_requires_both_roles(
    worker_client: AsyncClient, owner_client: AsyncClient, test_org, test_workplace, test_worker
):
    url = f"/api/v1/orgs/{test_org.id}/workplaces/{test_workplace.id}/attendance/sheet"
    body = {"date": "2024-03-14", "entries": [{"user_id": test_worker.id}]}

    # 조직 MEMBER는 조직 권한에서 거부됩니다.
    assert (await worker_client.post(url, json=body)).status_code == 403
    # 조직 OWNER라도 작업장에 배치되지 않으면 거부됩니다.
    response = await owner_client.post(url, json=body)
    assert response.status_code == 403
    assert response.json()["detail"] == "You are not assigned to this workplace."


# =============================================================================
# 4. 승인 워크플로우
# =============================================================================
@pytest.mark.asyncio
async def test_approve_pending_clock_in(
    manager_client: AsyncClient, worker_client: AsyncClient, test_org, test_workplace, test_manager
):
    clock_in = await worker_client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})
    record_id = clock_in.json()["id"]

    response = await manager_client.get(f"{_attendance_url(test_org.id)}/pending-approval")
    assert [r["id"] for r in response.json()] == [record_id]

    response = await manager_client.post(f"{_attendance_url(test_org.id)}/{record_id}/approve")
    assert response.status_code == 200
    assert response.json()["approval_status"] == "APPROVED"
    assert response.json()["approved_by_id"] == test_manager.id

    response = await manager_client.get(f"{_attendance_url(test_org.id)}/pending-approval")
    assert response.json() == []


@pytest.mark.asyncio
async def test_reject_requires_reason(manager_client: AsyncClient, worker_client: AsyncClient, test_org, test_workplace):
    clock_in = await worker_client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})
    url = f"{_attendance_url(test_org.id)}/{clock_in.json()['id']}/reject"

    assert (await manager_client.post(url, json={"rejection_reason": "   "})).status_code == 422
    assert (await manager_client.post(url, json={})).status_code == 422

    response = await manager_client.post(url, json={"rejection_reason": "  Left site early  "})
    assert response.status_code == 200
    assert response.json()["approval_status"] == "REJECTED"
    assert response.json()["rejection_reason"] == "Left site early"

    # 반려 후 다시 승인하면 반려 사유가 지워집니다.
    response = await manager_client.post(f"{_attendance_url(test_org.id)}/{clock_in.json()['id']}/approve")
    assert response.json()["approval_status"] == "APPROVED"
    assert response.json()["rejection_reason"] is None


@pytest.mark.asyncio
async def test_worker_cannot_approve(worker_client: AsyncClient, test_org, test_workplace):
    clock_in = await worker_client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})
    response = await worker_client.post(f"{_attendance_url(test_org.id)}/{clock_in.json()['id']}/approve")
    assert response.status_code == 403


# =============================================================================
# 5. 셀프 출퇴근
# =============================================================================
@pytest.mark.asyncio
async def test_clock_in_creates_pending_record(worker_client: AsyncClient, test_org, test_workplace, test_worker):
    response = await worker_client.post(CLOCK_IN_URL, json={
        "workplace_id": test_workplace.id, "latitude": 37.5, "longitude": 127.0, "notes": "gate 2",
    })

    assert response.status_code == 200
    record = response.json()
    assert record["user_id"] == test_worker.id
    assert record["org_id"] == test_org.id
    assert record["work_date"] == "2024-03-15"
    assert record["status"] == "PRESENT"
    assert record["approval_status"] == "PENDING"
    assert record["check_in_time"].startswith("2024-03-15T09:00:00")
    assert record["daily_rate"] == WORKER_DAILY_RATE
    assert record["latitude"] == 37.5
    assert record["notes"] == "gate 2"


@pytest.mark.asyncio
async def test_clock_in_twice(worker_client: AsyncClient, test_workplace):
    assert (await worker_client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})).status_code == 200

    response = await worker_client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})
    assert response.status_code == 400
    assert response.json()["detail"] == "Already clocked in today."


@pytest.mark.asyncio
async def test_clock_in_requires_assignment(
    owner_client: AsyncClient, superadmin_client: AsyncClient, test_workplace
):
    for client in (owner_client, superadmin_client):
        response = await client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})
        assert response.status_code == 403
        assert response.json()["detail"] == "You are not assigned to this workplace."


@pytest.mark.asyncio
async def test_clock_out_computes_hours_and_amount(worker_client: AsyncClient, frozen_clock, test_workplace):
    response = await worker_client.post(CLOCK_OUT_URL, json={"workplace_id": test_workplace.id})
    assert response.status_code == 400
    assert response.json()["detail"] == "No clock-in record found for today."

    assert (await worker_client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})).status_code == 200
    frozen_clock.now = frozen_clock.now + timedelta(hours=4, minutes=30)

    response = await worker_client.post(CLOCK_OUT_URL, json={"workplace_id": test_workplace.id})
    assert response.status_code == 200
    record = response.json()
    assert record["check_out_time"].startswith("2024-03-15T13:30:00")
    assert record["hours_worked"] == 4.5
    assert record["amount_earned"] == 112.5

    response = await worker_client.post(CLOCK_OUT_URL, json={"workplace_id": test_workplace.id})
    assert response.status_code == 400
    assert response.json()["detail"] == "Already clocked out today."


@pytest.mark.asyncio
async def test_today_status(worker_client: AsyncClient, frozen_clock, test_workplace):
    response = await worker_client.get(STATUS_URL)
    assert response.status_code == 200
    assert response.json() == []

    await worker_client.post(CLOCK_IN_URL, json={"workplace_id": test_workplace.id})
    response = await worker_client.get(STATUS_URL)
    assert [r["workplace_id"] for r in response.json()] == [test_workplace.id]

    # 다음 날(UTC)이 되면 오늘 기록이 없습니다.
    frozen_clock.now = frozen_clock.now + timedelta(days=1)
    response = await worker_client.get(STATUS_URL)
    assert response.json() == []
