# app/domains/wkp/routers.py

"""
'wkp' 도메인 (작업장, 작업자 배치, 지오펜스, 통계)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
모든 경로는 /orgs/{org_id}/workplaces 아래에 위치합니다.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.clock import Clock
from app.core.database import get_session
from app.core import dependencies as deps
from app.core.roles import (
    OrgRole,
    WorkplaceRole,
    allowed_roles_at_or_below,
    check_can_manage,
    check_role_change,
    check_role_grant,
)
from app.domains.org import crud as org_crud

from . import crud as wkp_crud
from . import schemas as wkp_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Workplace Management (작업장 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 작업장 (Workplace) 엔드포인트
# =============================================================================
@router.get("", response_model=List[wkp_schemas.WorkplaceRead], summary="조직의 작업장 목록 조회")
async def read_workplaces(
    db: AsyncSession = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MEMBER)),
):
    return await wkp_crud.workplace.get_multi(db, skip=skip, limit=limit, org_id=access.org.id)


@router.post("", response_model=wkp_schemas.WorkplaceRead, status_code=status.HTTP_201_CREATED, summary="새 작업장 생성")
async def create_workplace(
    workplace_in: wkp_schemas.WorkplaceCreate,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.ADMIN)),
):
    """
    작업장을 생성합니다. 생성자는 해당 작업장의 SUPERVISOR로 자동 배치됩니다.
    """
    return await wkp_crud.workplace.create_with_supervisor(
        db, org_id=access.org.id, obj_in=workplace_in, creator_id=access.user.id
    )


async def _get_org_workplace(db: AsyncSession, org_id: int, workplace_id: int):
    db_workplace = await wkp_crud.workplace.get(db, id=workplace_id)
    if not db_workplace or db_workplace.org_id != org_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workplace not found")
    return db_workplace


@router.get("/{workplace_id}", response_model=wkp_schemas.WorkplaceRead, summary="특정 작업장 조회")
async def read_workplace(
    workplace_id: int,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.VIEWER)),
):
    return await _get_org_workplace(db, access.org.id, workplace_id)


@router.patch("/{workplace_id}", response_model=wkp_schemas.WorkplaceRead, summary="작업장 수정")
async def update_workplace(
    workplace_id: int,
    workplace_in: wkp_schemas.WorkplaceUpdate,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.ADMIN)),
):
    db_workplace = await _get_org_workplace(db, access.org.id, workplace_id)
    start = workplace_in.start_date if "start_date" in workplace_in.model_fields_set else db_workplace.start_date
    end = workplace_in.end_date if "end_date" in workplace_in.model_fields_set else db_workplace.end_date
    if start and end and end < start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be earlier than start_date")
    return await wkp_crud.workplace.update(db, db_obj=db_workplace, obj_in=workplace_in)


@router.delete("/{workplace_id}", status_code=status.HTTP_204_NO_CONTENT, summary="작업장 삭제")
async def delete_workplace(
    workplace_id: int,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.ADMIN)),
):
    await _get_org_workplace(db, access.org.id, workplace_id)
    await wkp_crud.workplace.remove(db, id=workplace_id)
    return None


# =============================================================================
# 2. 작업자 (Worker) 배치 엔드포인트
# =============================================================================
@router.get("/{workplace_id}/workers", response_model=List[wkp_schemas.WorkerRead], summary="작업자 목록 조회")
async def read_workers(
    db: AsyncSession = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    """
    호출자의 작업장 역할 이하인 작업자만 반환합니다.
    """
    visible_roles = allowed_roles_at_or_below(WorkplaceRole, access.role)
    return await wkp_crud.assignment.list_workers(
        db, workplace_id=access.workplace.id, roles=visible_roles, skip=skip, limit=limit
    )


@router.post("/{workplace_id}/workers", response_model=wkp_schemas.WorkerAssignResult, status_code=status.HTTP_201_CREATED, summary="작업자 일괄 배치")
async def assign_workers(
    assign_in: wkp_schemas.WorkerAssign,
    db: AsyncSession = Depends(get_session),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    """
    조직의 활성 구성원만 배치할 수 있으며, 호출자보다 낮은 역할만 부여할 수 있습니다.
    """
    if not access.is_superadmin:
        check_role_grant(WorkplaceRole, access.role, assign_in.role)

    requested = set(assign_in.user_ids)
    members = await org_crud.membership.get_active_user_ids(
        db, org_id=access.workplace.org_id, user_ids=requested
    )
    invalid = sorted(requested - members)
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Users are not active members of this organization: {invalid}"
        )
    return await wkp_crud.assignment.assign_many(
        db, workplace_id=access.workplace.id, obj_in=assign_in, assigned_by_id=access.user.id
    )


@router.patch("/{workplace_id}/workers/{user_id}", response_model=wkp_schemas.WorkerRead, summary="작업자 역할/일당 변경")
async def update_worker(
    user_id: int,
    worker_in: wkp_schemas.WorkerUpdate,
    db: AsyncSession = Depends(get_session),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    db_assignment = await wkp_crud.assignment.get_active(db, workplace_id=access.workplace.id, user_id=user_id)
    if not db_assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Worker not found in this workplace")

    if not access.is_superadmin:
        if worker_in.role is not None and worker_in.role != db_assignment.role:
            check_role_change(WorkplaceRole, access.role, db_assignment.role, worker_in.role)
        else:
            check_can_manage(WorkplaceRole, access.role, db_assignment.role)

    await wkp_crud.assignment.update(db, db_obj=db_assignment, obj_in=worker_in)
    return await wkp_crud.assignment.get_worker(db, workplace_id=access.workplace.id, user_id=user_id)


@router.delete("/{workplace_id}/workers/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="작업자 배치 해제")
async def unassign_worker(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    db_assignment = await wkp_crud.assignment.get_active(db, workplace_id=access.workplace.id, user_id=user_id)
    if not db_assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Worker not found in this workplace")
    if not access.is_superadmin:
        check_can_manage(WorkplaceRole, access.role, db_assignment.role)

    await wkp_crud.assignment.deactivate(db, db_obj=db_assignment)
    return None


# =============================================================================
# 3. 통계 / 활동 로그
# =============================================================================
@router.get("/{workplace_id}/stats", response_model=wkp_schemas.WorkplaceStats, summary="작업장 통계")
async def read_workplace_stats(
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    return await wkp_crud.workplace.get_stats(db, workplace=access.workplace, now=clock())


@router.get("/{workplace_id}/activity", response_model=List[wkp_schemas.ActivityEvent], summary="작업장 활동 로그")
async def read_workplace_activity(
    db: AsyncSession = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    return await wkp_crud.workplace.get_activity(db, workplace_id=access.workplace.id, skip=skip, limit=limit)


# =============================================================================
# 4. 지오펜스 (Geofence)
# =============================================================================
@router.get("/{workplace_id}/geofence", response_model=wkp_schemas.GeofenceRead, summary="지오펜스 조회")
async def read_geofence(
    db: AsyncSession = Depends(get_session),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.WORKER)),
):
    db_geofence = await wkp_crud.geofence.get_by_workplace(db, workplace_id=access.workplace.id)
    if not db_geofence:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Geofence not set for this workplace")
    return db_geofence


@router.put("/{workplace_id}/geofence", response_model=wkp_schemas.GeofenceRead, summary="지오펜스 설정")
async def set_geofence(
    geofence_in: wkp_schemas.GeofenceSet,
    db: AsyncSession = Depends(get_session),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    return await wkp_crud.geofence.upsert(
        db, workplace_id=access.workplace.id, obj_in=geofence_in, set_by_id=access.user.id
    )


@router.delete("/{workplace_id}/geofence", status_code=status.HTTP_204_NO_CONTENT, summary="지오펜스 삭제")
async def delete_geofence(
    db: AsyncSession = Depends(get_session),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    db_geofence = await wkp_crud.geofence.get_by_workplace(db, workplace_id=access.workplace.id)
    if not db_geofence:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Geofence not set for this workplace")
    await wkp_crud.geofence.delete(db, id=db_geofence.id)
    return None
