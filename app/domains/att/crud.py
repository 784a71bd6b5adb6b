# app/domains/att/crud.py

"""
'att' 도메인의 CRUD 작업을 담당하는 모듈입니다.

- 관리자 출석 기록은 (사용자, 작업장, 날짜) 기준 upsert이며 즉시 APPROVED 처리됩니다.
- 셀프 출근/QR 체크인은 PENDING 상태로 기록되고, 퇴근 시 근무시간과 지급액을 계산합니다.
- 승인/반려 워크플로우
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.clock import ensure_utc
from app.core.crud_base import CRUDBase
from . import models as att_models
from . import schemas as att_schemas

logger = logging.getLogger(__name__)

# 일당 기준 근무시간
STANDARD_WORK_HOURS = 8


def calculate_amount(hours_worked: Optional[float], daily_rate: Optional[float]) -> Optional[float]:
    """근무시간 / 8 x 일당. 둘 중 하나라도 없으면 None."""
    if hours_worked is None or daily_rate is None:
        return None
    return round(hours_worked / STANDARD_WORK_HOURS * daily_rate, 2)


class CRUDAttendance(CRUDBase[att_models.Attendance, att_schemas.AttendanceMark, att_schemas.AttendanceUpdate]):
    def __init__(self):
        super().__init__(model=att_models.Attendance)

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------
    async def get_for_day(
        self, db: AsyncSession, *, user_id: int, workplace_id: Optional[int], work_date: date
    ) -> Optional[att_models.Attendance]:
        """(사용자, 작업장, 날짜) 조합의 출석 기록. 작업장이 없는 기록도 구분하여 조회합니다."""
        statement = select(att_models.Attendance).where(
            att_models.Attendance.user_id == user_id,
            att_models.Attendance.work_date == work_date,
        )
        if workplace_id is None:
            statement = statement.where(att_models.Attendance.workplace_id.is_(None))
        else:
            statement = statement.where(att_models.Attendance.workplace_id == workplace_id)
        response = await db.execute(statement.limit(1))
        return response.scalars().first()

    async def list_for_org(
        self,
        db: AsyncSession,
        *,
        org_id: int,
        user_id: Optional[int] = None,
        workplace_id: Optional[int] = None,
        status: Optional[att_models.AttendanceStatus] = None,
        approval_status: Optional[att_models.ApprovalStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[att_models.Attendance]:
        filters: Dict[str, Any] = {
            "org_id": org_id,
            "user_id": user_id,
            "workplace_id": workplace_id,
            "status": status,
            "approval_status": approval_status,
        }
        return await self.get_filtered(
            db,
            filters=filters,
            date_range_field="work_date",
            start_date=start_date,
            end_date=end_date,
            order_by_field="work_date",
            skip=skip,
            limit=limit,
        )

    async def list_for_user(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[att_models.Attendance]:
        return await self.get_filtered(
            db,
            filters={"user_id": user_id},
            date_range_field="work_date",
            start_date=start_date,
            end_date=end_date,
            order_by_field="work_date",
            skip=skip,
            limit=limit,
        )

    # -------------------------------------------------------------------------
    # 관리자 기록 (upsert)
    # -------------------------------------------------------------------------
    async def upsert_marks(
        self,
        db: AsyncSession,
        *,
        org_id: int,
        marks: Iterable[att_schemas.AttendanceMark],
        marked_by_id: int,
        now: datetime,
    ) -> Tuple[int, int, List[att_models.Attendance]]:
        """
        관리자 기록을 upsert합니다. 모든 레코드는 기록자에 의해 승인된 상태가 됩니다.
        호출 전에 대상 사용자/작업장 검증을 마쳐야 하며, 한 번의 커밋으로 반영됩니다.

        Returns:
            (생성 건수, 갱신 건수, 레코드 목록)
        """
        created, updated = 0, 0
        records: List[att_models.Attendance] = []
        for mark in marks:
            values = mark.model_dump(exclude={"user_id", "workplace_id", "date"}, exclude_unset=True)
            values.setdefault("status", mark.status)
            db_obj = await self.get_for_day(
                db, user_id=mark.user_id, workplace_id=mark.workplace_id, work_date=mark.date
            )
            if db_obj is None:
                db_obj = att_models.Attendance(
                    user_id=mark.user_id, org_id=org_id, workplace_id=mark.workplace_id, work_date=mark.date
                )
                created += 1
            else:
                updated += 1
            for key, value in values.items():
                setattr(db_obj, key, value)

            db_obj.amount_earned = calculate_amount(db_obj.hours_worked, db_obj.daily_rate)
            db_obj.approval_status = att_models.ApprovalStatus.APPROVED
            db_obj.rejection_reason = None
            db_obj.marked_by_id = marked_by_id
            db_obj.approved_by_id = marked_by_id
            db_obj.approved_at = now
            db_obj.updated_at = now
            db.add(db_obj)
            # 같은 요청 안의 중복 키가 다음 조회에서 보이도록 flush
            await db.flush()
            records.append(db_obj)

        await db.commit()
        for db_obj in records:
            await db.refresh(db_obj)
        logger.info("Org %s: attendance marked by user %s (created=%s, updated=%s)", org_id, marked_by_id, created, updated)
        return created, updated, records

    async def update(
        self, db: AsyncSession, *, db_obj: att_models.Attendance, obj_in: att_schemas.AttendanceUpdate
    ) -> att_models.Attendance:
        """수정 후 지급액을 다시 계산합니다."""
        for key, value in obj_in.model_dump(exclude_unset=True).items():
            setattr(db_obj, key, value)
        db_obj.amount_earned = calculate_amount(db_obj.hours_worked, db_obj.daily_rate)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    # -------------------------------------------------------------------------
    # 승인 워크플로우
    # -------------------------------------------------------------------------
    async def approve(
        self, db: AsyncSession, *, db_obj: att_models.Attendance, approver_id: int, now: datetime
    ) -> att_models.Attendance:
        db_obj.approval_status = att_models.ApprovalStatus.APPROVED
        db_obj.rejection_reason = None
        db_obj.approved_by_id = approver_id
        db_obj.approved_at = now
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("Attendance %s approved by user %s", db_obj.id, approver_id)
        return db_obj

    async def reject(
        self, db: AsyncSession, *, db_obj: att_models.Attendance, approver_id: int, reason: str, now: datetime
    ) -> att_models.Attendance:
        db_obj.approval_status = att_models.ApprovalStatus.REJECTED
        db_obj.rejection_reason = reason
        db_obj.approved_by_id = approver_id
        db_obj.approved_at = now
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("Attendance %s rejected by user %s", db_obj.id, approver_id)
        return db_obj

    # -------------------------------------------------------------------------
    # 셀프 출퇴근 / QR 체크인
    # -------------------------------------------------------------------------
    async def check_in(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        org_id: int,
        workplace_id: int,
        work_date: date,
        now: datetime,
        daily_rate: Optional[float] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        notes: Optional[str] = None,
        already_checked_in_detail: str = "Already clocked in today.",
    ) -> att_models.Attendance:
        """
        출근 시각을 기록한 PENDING 레코드를 upsert합니다.
        해당 날짜에 이미 출근 기록이 있으면 already_checked_in_detail로 400을 반환합니다.
        """
        db_obj = await self.get_for_day(db, user_id=user_id, workplace_id=workplace_id, work_date=work_date)
        if db_obj is not None and db_obj.check_in_time is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=already_checked_in_detail)
        if db_obj is None:
            db_obj = att_models.Attendance(
                user_id=user_id, org_id=org_id, workplace_id=workplace_id, work_date=work_date
            )

        db_obj.check_in_time = now
        db_obj.status = att_models.AttendanceStatus.PRESENT
        db_obj.approval_status = att_models.ApprovalStatus.PENDING
        db_obj.daily_rate = daily_rate
        db_obj.latitude = latitude
        db_obj.longitude = longitude
        if notes is not None:
            db_obj.notes = notes

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("User %s checked in at workplace %s for %s", user_id, workplace_id, work_date)
        return db_obj

    async def check_out(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        workplace_id: int,
        work_date: date,
        now: datetime,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> att_models.Attendance:
        """
        퇴근 시각을 기록하고 근무시간(소수점 2자리)과 지급액을 계산합니다.
        """
        db_obj = await self.get_for_day(db, user_id=user_id, workplace_id=workplace_id, work_date=work_date)
        if db_obj is None or db_obj.check_in_time is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No clock-in record found for today.")
        if db_obj.check_out_time is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already clocked out today.")

        elapsed = now - ensure_utc(db_obj.check_in_time)
        db_obj.check_out_time = now
        db_obj.hours_worked = round(max(elapsed.total_seconds(), 0) / 3600, 2)
        db_obj.amount_earned = calculate_amount(db_obj.hours_worked, db_obj.daily_rate)
        if latitude is not None:
            db_obj.latitude = latitude
        if longitude is not None:
            db_obj.longitude = longitude

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("User %s checked out at workplace %s (%.2fh)", user_id, workplace_id, db_obj.hours_worked)
        return db_obj

    async def list_for_day(self, db: AsyncSession, *, user_id: int, work_date: date) -> List[att_models.Attendance]:
        return await self.get_filtered(
            db, filters={"user_id": user_id, "work_date": work_date}, order_desc=False
        )


attendance = CRUDAttendance()
