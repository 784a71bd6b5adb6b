# app/domains/att/routers.py

"""
'att' 도메인 (출석)과 관련된 API 엔드포인트를 정의하는 모듈입니다.

- org_router: /orgs/{org_id}/attendance (관리자 기록, 승인/반려)
- sheet_router: /orgs/{org_id}/workplaces/{workplace_id}/attendance (작업장 출석부)
- self_router: /attendance (작업자 셀프 출퇴근, 오늘 상태)
- qr_router: /attendance/qr (QR 토큰 생성, 스캔 체크인)
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.clock import Clock, utc_today
from app.core.database import get_session
from app.core import dependencies as deps
from app.core.qr import QrTokenService, end_of_day, render_qr_data_url
from app.core.roles import OrgRole, WorkplaceRole, has_sufficient_weight
from app.domains.usr import models as usr_models
from app.domains.org import crud as org_crud
from app.domains.wkp import crud as wkp_crud

from . import crud as att_crud
from . import models as att_models
from . import schemas as att_schemas

logger = logging.getLogger(__name__)

INVALID_QR_TOKEN = "QR token is invalid or has expired."

org_router = APIRouter(
    tags=["Attendance Management (출석 관리)"],
    responses={404: {"description": "Not found"}},
)
sheet_router = APIRouter(
    tags=["Attendance Management (출석 관리)"],
    responses={404: {"description": "Not found"}},
)
self_router = APIRouter(
    tags=["Self Attendance (셀프 출퇴근)"],
)
qr_router = APIRouter(
    tags=["QR Attendance (QR 출석)"],
)


# =============================================================================
# 1. 조직 출석 (관리자)
# =============================================================================
async def _validate_marks(db: AsyncSession, org_id: int, marks: List[att_schemas.AttendanceMark]) -> None:
    """
    모든 기록을 먼저 검증합니다. 하나라도 실패하면 아무것도 저장하지 않습니다.
    """
    user_ids = {mark.user_id for mark in marks}
    members = await org_crud.membership.get_active_user_ids(db, org_id=org_id, user_ids=user_ids)
    invalid = sorted(user_ids - members)
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Users are not active members of this organization: {invalid}"
        )

    for workplace_id in {mark.workplace_id for mark in marks if mark.workplace_id is not None}:
        db_workplace = await wkp_crud.workplace.get(db, id=workplace_id)
        if not db_workplace or db_workplace.org_id != org_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Workplace {workplace_id} not found")


async def _get_org_attendance(db: AsyncSession, org_id: int, attendance_id: int) -> att_models.Attendance:
    db_attendance = await att_crud.attendance.get(db, id=attendance_id)
    if not db_attendance or db_attendance.org_id != org_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attendance record not found")
    return db_attendance


@org_router.get("", response_model=List[att_schemas.AttendanceRead], summary="조직 출석 기록 목록 조회")
async def read_org_attendance(
    user_id: Optional[int] = Query(None),
    workplace_id: Optional[int] = Query(None),
    attendance_status: Optional[att_models.AttendanceStatus] = Query(None, alias="status"),
    approval_status: Optional[att_models.ApprovalStatus] = Query(None),
    start_date: Optional[date] = Query(None, description="검색 시작일 (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="검색 종료일 (YYYY-MM-DD)"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    return await att_crud.attendance.list_for_org(
        db,
        org_id=access.org.id,
        user_id=user_id,
        workplace_id=workplace_id,
        status=attendance_status,
        approval_status=approval_status,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@org_router.get("/pending-approval", response_model=List[att_schemas.AttendanceRead], summary="승인 대기 출석 목록")
async def read_pending_attendance(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    return await att_crud.attendance.list_for_org(
        db, org_id=access.org.id, approval_status=att_models.ApprovalStatus.PENDING, skip=skip, limit=limit
    )


@org_router.post("", response_model=att_schemas.AttendanceRead, status_code=status.HTTP_201_CREATED, summary="출석 기록")
async def mark_attendance(
    mark_in: att_schemas.AttendanceMark,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    """
    한 명의 출석을 기록합니다. 같은 (사용자, 작업장, 날짜) 기록이 있으면 덮어쓰며 즉시 승인됩니다.
    """
    await _validate_marks(db, access.org.id, [mark_in])
    _, _, records = await att_crud.attendance.upsert_marks(
        db, org_id=access.org.id, marks=[mark_in], marked_by_id=access.user.id, now=clock()
    )
    return records[0]


@org_router.post("/bulk", response_model=att_schemas.AttendanceBulkResult, status_code=status.HTTP_201_CREATED, summary="출석 일괄 기록")
async def mark_attendance_bulk(
    bulk_in: att_schemas.AttendanceBulk,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    await _validate_marks(db, access.org.id, bulk_in.records)
    created, updated, records = await att_crud.attendance.upsert_marks(
        db, org_id=access.org.id, marks=bulk_in.records, marked_by_id=access.user.id, now=clock()
    )
    return att_schemas.AttendanceBulkResult(
        created=created,
        updated=updated,
        records=[att_schemas.AttendanceRead.model_validate(record) for record in records],
    )


@org_router.get("/{attendance_id}", response_model=att_schemas.AttendanceRead, summary="특정 출석 기록 조회")
async def read_attendance(
    attendance_id: int,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    return await _get_org_attendance(db, access.org.id, attendance_id)


@org_router.patch("/{attendance_id}", response_model=att_schemas.AttendanceRead, summary="출석 기록 수정")
async def update_attendance(
    attendance_id: int,
    attendance_in: att_schemas.AttendanceUpdate,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    db_attendance = await _get_org_attendance(db, access.org.id, attendance_id)
    return await att_crud.attendance.update(db, db_obj=db_attendance, obj_in=attendance_in)


@org_router.delete("/{attendance_id}", status_code=status.HTTP_204_NO_CONTENT, summary="출석 기록 삭제")
async def delete_attendance(
    attendance_id: int,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.ADMIN)),
):
    await _get_org_attendance(db, access.org.id, attendance_id)
    await att_crud.attendance.delete(db, id=attendance_id)
    return None


@org_router.post("/{attendance_id}/approve", response_model=att_schemas.AttendanceRead, summary="출석 승인")
async def approve_attendance(
    attendance_id: int,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    db_attendance = await _get_org_attendance(db, access.org.id, attendance_id)
    return await att_crud.attendance.approve(db, db_obj=db_attendance, approver_id=access.user.id, now=clock())


@org_router.post("/{attendance_id}/reject", response_model=att_schemas.AttendanceRead, summary="출석 반려")
async def reject_attendance(
    attendance_id: int,
    reject_in: att_schemas.AttendanceReject,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    db_attendance = await _get_org_attendance(db, access.org.id, attendance_id)
    return await att_crud.attendance.reject(
        db, db_obj=db_attendance, approver_id=access.user.id, reason=reject_in.rejection_reason, now=clock()
    )


# =============================================================================
# 2. 작업장 출석부
# =============================================================================
@sheet_router.post("/sheet", response_model=att_schemas.AttendanceBulkResult, status_code=status.HTTP_201_CREATED, summary="작업장 출석부 제출")
async def submit_attendance_sheet(
    sheet_in: att_schemas.AttendanceSheet,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    org_access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
    access: deps.WorkplaceAccess = Depends(deps.require_workplace_role(WorkplaceRole.SUPERVISOR)),
):
    """
    작업장에 활성 배치된 작업자만 기록할 수 있습니다. 각 작업자의 배치 일당이 기록에 복사됩니다.
    """
    requested = {entry.user_id for entry in sheet_in.entries}
    assigned = await wkp_crud.assignment.get_active_user_ids(db, workplace_id=access.workplace.id, user_ids=requested)
    invalid = sorted(requested - assigned)
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Users are not assigned to this workplace: {invalid}"
        )

    marks = []
    for entry in sheet_in.entries:
        db_assignment = await wkp_crud.assignment.get_active(db, workplace_id=access.workplace.id, user_id=entry.user_id)
        marks.append(att_schemas.AttendanceMark(
            **entry.model_dump(exclude_unset=True),
            workplace_id=access.workplace.id,
            date=sheet_in.date,
            daily_rate=db_assignment.daily_rate,
        ))

    created, updated, records = await att_crud.attendance.upsert_marks(
        db, org_id=org_access.org.id, marks=marks, marked_by_id=access.user.id, now=clock()
    )
    return att_schemas.AttendanceBulkResult(
        created=created,
        updated=updated,
        records=[att_schemas.AttendanceRead.model_validate(record) for record in records],
    )


# =============================================================================
# 3. 셀프 출퇴근
# =============================================================================
@self_router.post("/clock-in", response_model=att_schemas.AttendanceRead, summary="출근")
async def clock_in(
    clock_in_in: att_schemas.ClockIn,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    배치된 작업장에 오늘(UTC) 출근을 기록합니다. 승인 전까지 PENDING 상태입니다.
    """
    db_assignment = await wkp_crud.assignment.get_active(
        db, workplace_id=clock_in_in.workplace_id, user_id=current_user.id
    )
    if db_assignment is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not assigned to this workplace.")
    db_workplace = await wkp_crud.workplace.get(db, id=clock_in_in.workplace_id)

    now = clock()
    return await att_crud.attendance.check_in(
        db,
        user_id=current_user.id,
        org_id=db_workplace.org_id,
        workplace_id=db_workplace.id,
        work_date=utc_today(clock),
        now=now,
        daily_rate=db_assignment.daily_rate,
        latitude=clock_in_in.latitude,
        longitude=clock_in_in.longitude,
        notes=clock_in_in.notes,
    )


@self_router.post("/clock-out", response_model=att_schemas.AttendanceRead, summary="퇴근")
async def clock_out(
    clock_out_in: att_schemas.ClockOut,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await att_crud.attendance.check_out(
        db,
        user_id=current_user.id,
        workplace_id=clock_out_in.workplace_id,
        work_date=utc_today(clock),
        now=clock(),
        latitude=clock_out_in.latitude,
        longitude=clock_out_in.longitude,
    )


@self_router.get("/status", response_model=List[att_schemas.AttendanceRead], summary="오늘 출석 상태")
async def read_today_status(
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await att_crud.attendance.list_for_day(db, user_id=current_user.id, work_date=utc_today(clock))


# =============================================================================
# 4. QR 출석
# =============================================================================
@qr_router.post("/generate", response_model=att_schemas.QrGenerateResponse, summary="QR 토큰 생성")
async def generate_qr(
    generate_in: att_schemas.QrGenerate,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    qr_service: QrTokenService = Depends(deps.get_qr_service),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    작업장 SUPERVISOR 이상만 생성할 수 있습니다. 토큰은 대상 날짜 23:59:59.999 UTC에 만료됩니다.
    """
    db_workplace = await wkp_crud.workplace.get(db, id=generate_in.workplace_id)
    if not db_workplace:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workplace not found")

    role = await deps.resolve_workplace_role(db, user=current_user, workplace_id=db_workplace.id)
    if role is None or not has_sufficient_weight(WorkplaceRole, role, WorkplaceRole.SUPERVISOR):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You need at least SUPERVISOR role to generate QR codes for this workplace."
        )

    target_date = generate_in.date or utc_today(clock)
    token = qr_service.generate(str(db_workplace.id), target_date)
    logger.info("QR token generated for workplace %s (%s) by user %s", db_workplace.id, target_date, current_user.id)
    return att_schemas.QrGenerateResponse(
        token=token,
        qr_code=render_qr_data_url(token),
        workplace_id=db_workplace.id,
        date=target_date,
        expires_at=end_of_day(target_date),
    )


def _parse_workplace_id(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


@qr_router.post("/scan", response_model=att_schemas.AttendanceRead, summary="QR 스캔 체크인")
async def scan_qr(
    scan_in: att_schemas.QrScan,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(deps.get_clock),
    qr_service: QrTokenService = Depends(deps.get_qr_service),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    토큰의 작업장/날짜로 PENDING 출근 기록을 만듭니다.
    """
    payload = qr_service.verify(scan_in.token)
    workplace_id = _parse_workplace_id(payload.workplace_id) if payload else None
    if workplace_id is None:
        logger.info("User %s submitted an invalid QR token", current_user.id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_QR_TOKEN)

    db_assignment = await wkp_crud.assignment.get_active(db, workplace_id=workplace_id, user_id=current_user.id)
    if db_assignment is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not assigned to this workplace.")
    db_workplace = await wkp_crud.workplace.get(db, id=workplace_id)

    return await att_crud.attendance.check_in(
        db,
        user_id=current_user.id,
        org_id=db_workplace.org_id,
        workplace_id=workplace_id,
        work_date=date.fromisoformat(payload.date),
        now=clock(),
        daily_rate=db_assignment.daily_rate,
        latitude=scan_in.latitude,
        longitude=scan_in.longitude,
        already_checked_in_detail="Already clocked in for this date.",
    )
