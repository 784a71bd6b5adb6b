# app/domains/wkp/crud.py

"""
'wkp' 도메인의 CRUD 작업을 담당하는 모듈입니다.

- 작업장 생성 시 생성자를 SUPERVISOR로 자동 배치
- 작업자 일괄 배치 (중복 건너뛰기, 비활성 배치 재활성화), 역할 변경, 배치 해제(소프트 삭제)
- 작업장 통계, 활동 로그, 지오펜스 upsert
"""

import logging
from datetime import datetime, UTC
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.clock import ensure_utc
from app.core.crud_base import CRUDBase
from app.core.roles import WorkplaceRole
from app.domains.usr import models as usr_models
from app.domains.att import models as att_models
from . import models as wkp_models
from . import schemas as wkp_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. workplaces 테이블 CRUD
# =============================================================================
class CRUDWorkplace(CRUDBase[wkp_models.Workplace, wkp_schemas.WorkplaceCreate, wkp_schemas.WorkplaceUpdate]):
    def __init__(self):
        super().__init__(model=wkp_models.Workplace)

    async def create_with_supervisor(
        self, db: AsyncSession, *, org_id: int, obj_in: wkp_schemas.WorkplaceCreate, creator_id: int
    ) -> wkp_models.Workplace:
        """작업장을 만들고 생성자를 SUPERVISOR로 배치합니다."""
        db_workplace = wkp_models.Workplace(**obj_in.model_dump(), org_id=org_id, created_by_id=creator_id)
        db.add(db_workplace)
        await db.flush()

        db.add(wkp_models.WorkplaceAssignment(
            workplace_id=db_workplace.id,
            user_id=creator_id,
            role=WorkplaceRole.SUPERVISOR,
            assigned_by_id=creator_id,
        ))
        await db.commit()
        await db.refresh(db_workplace)
        logger.info("Workplace %s created in org %s by user %s", db_workplace.id, org_id, creator_id)
        return db_workplace

    async def remove(self, db: AsyncSession, *, id: int) -> wkp_models.Workplace:
        """
        작업장을 삭제합니다. 배치/지오펜스는 함께 삭제하고, 출석 기록은 작업장 연결만 해제합니다.
        """
        db_workplace = await self.get(db, id=id)
        if not db_workplace:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workplace not found")

        await db.execute(
            update(att_models.Attendance).where(att_models.Attendance.workplace_id == id).values(workplace_id=None)
        )
        await db.execute(delete(wkp_models.WorkplaceAssignment).where(wkp_models.WorkplaceAssignment.workplace_id == id))
        await db.execute(delete(wkp_models.WorkplaceGeofence).where(wkp_models.WorkplaceGeofence.workplace_id == id))
        await db.delete(db_workplace)
        await db.commit()
        return db_workplace

    async def get_stats(
        self, db: AsyncSession, *, workplace: wkp_models.Workplace, now: datetime
    ) -> wkp_schemas.WorkplaceStats:
        workplace_id, today = workplace.id, now.astimezone(UTC).date()
        headcount_stmt = select(func.count(wkp_models.WorkplaceAssignment.id)).where(
            wkp_models.WorkplaceAssignment.workplace_id == workplace_id,
            wkp_models.WorkplaceAssignment.is_active == True,  # noqa: E712
        )
        present_stmt = select(func.count(att_models.Attendance.id)).where(
            att_models.Attendance.workplace_id == workplace_id,
            att_models.Attendance.work_date == today,
            att_models.Attendance.check_in_time.is_not(None),
        )
        pending_stmt = select(func.count(att_models.Attendance.id)).where(
            att_models.Attendance.workplace_id == workplace_id,
            att_models.Attendance.approval_status == att_models.ApprovalStatus.PENDING,
        )
        labor_stmt = select(func.coalesce(func.sum(att_models.Attendance.amount_earned), 0)).where(
            att_models.Attendance.workplace_id == workplace_id,
        )

        headcount = (await db.execute(headcount_stmt)).scalar_one()
        present_today = (await db.execute(present_stmt)).scalar_one()
        pending = (await db.execute(pending_stmt)).scalar_one()
        labor_cost = round(float((await db.execute(labor_stmt)).scalar_one()), 2)

        return wkp_schemas.WorkplaceStats(
            workplace_id=workplace_id,
            date=today,
            headcount=headcount,
            present_today=present_today,
            attendance_rate=round(present_today / headcount * 100) if headcount else 0,
            pending_approvals=pending,
            labor_cost=labor_cost,
            total_spent=labor_cost,
            budget=workplace.budget,
            budget_remaining=round(workplace.budget - labor_cost, 2) if workplace.budget is not None else None,
            last_calculated=now,
        )

    async def get_activity(
        self, db: AsyncSession, *, workplace_id: int, skip: int = 0, limit: int = 20
    ) -> List[wkp_schemas.ActivityEvent]:
        """
        출퇴근/배치/해제 이벤트를 하나의 타임라인으로 합쳐 최신순으로 반환합니다.
        """
        events: List[wkp_schemas.ActivityEvent] = []

        attendance_stmt = (
            select(att_models.Attendance, usr_models.User.name)
            .join(usr_models.User, usr_models.User.id == att_models.Attendance.user_id)
            .where(att_models.Attendance.workplace_id == workplace_id)
        )
        for record, user_name in (await db.execute(attendance_stmt)).all():
            meta = {"attendance_id": record.id, "date": record.work_date.isoformat()}
            if record.check_in_time:
                events.append(wkp_schemas.ActivityEvent(
                    type=wkp_schemas.ActivityType.CLOCK_IN, user_id=record.user_id, subject_name=user_name,
                    timestamp=ensure_utc(record.check_in_time), meta=meta,
                ))
            if record.check_out_time:
                events.append(wkp_schemas.ActivityEvent(
                    type=wkp_schemas.ActivityType.CLOCK_OUT, user_id=record.user_id, subject_name=user_name,
                    timestamp=ensure_utc(record.check_out_time),
                    meta={**meta, "hours_worked": record.hours_worked},
                ))

        assigner = select(usr_models.User.id, usr_models.User.name).subquery()
        assignment_stmt = (
            select(wkp_models.WorkplaceAssignment, usr_models.User.name, assigner.c.name)
            .join(usr_models.User, usr_models.User.id == wkp_models.WorkplaceAssignment.user_id)
            .outerjoin(assigner, assigner.c.id == wkp_models.WorkplaceAssignment.assigned_by_id)
            .where(wkp_models.WorkplaceAssignment.workplace_id == workplace_id)
        )
        for assignment, user_name, actor_name in (await db.execute(assignment_stmt)).all():
            meta = {"role": assignment.role.value}
            if assignment.assigned_at:
                events.append(wkp_schemas.ActivityEvent(
                    type=wkp_schemas.ActivityType.ASSIGNED, user_id=assignment.user_id, subject_name=user_name,
                    actor_name=actor_name, timestamp=ensure_utc(assignment.assigned_at), meta=meta,
                ))
            if assignment.removed_at and not assignment.is_active:
                events.append(wkp_schemas.ActivityEvent(
                    type=wkp_schemas.ActivityType.UNASSIGNED, user_id=assignment.user_id, subject_name=user_name,
                    timestamp=ensure_utc(assignment.removed_at), meta=meta,
                ))

        events.sort(key=lambda event: event.timestamp, reverse=True)
        return events[skip:skip + limit]


workplace = CRUDWorkplace()


# =============================================================================
# 2. workplace_assignments 테이블 CRUD
# =============================================================================
class CRUDWorkplaceAssignment(CRUDBase[wkp_models.WorkplaceAssignment, wkp_schemas.WorkerAssign, wkp_schemas.WorkerUpdate]):
    def __init__(self):
        super().__init__(model=wkp_models.WorkplaceAssignment)

    async def get_assignment(
        self, db: AsyncSession, *, workplace_id: int, user_id: int
    ) -> Optional[wkp_models.WorkplaceAssignment]:
        return await self.get_one_filtered(db, filters={"workplace_id": workplace_id, "user_id": user_id})

    async def get_active(
        self, db: AsyncSession, *, workplace_id: int, user_id: int
    ) -> Optional[wkp_models.WorkplaceAssignment]:
        return await self.get_one_filtered(
            db, filters={"workplace_id": workplace_id, "user_id": user_id, "is_active": True}
        )

    async def get_active_user_ids(self, db: AsyncSession, *, workplace_id: int, user_ids: Iterable[int]) -> set:
        statement = select(wkp_models.WorkplaceAssignment.user_id).where(
            wkp_models.WorkplaceAssignment.workplace_id == workplace_id,
            wkp_models.WorkplaceAssignment.user_id.in_(list(user_ids)),
            wkp_models.WorkplaceAssignment.is_active == True,  # noqa: E712
        )
        return set((await db.execute(statement)).scalars().all())

    async def list_workers(
        self,
        db: AsyncSession,
        *,
        workplace_id: int,
        roles: Iterable[WorkplaceRole],
        skip: int = 0,
        limit: int = 100,
    ) -> List[wkp_schemas.WorkerRead]:
        statement = (
            select(wkp_models.WorkplaceAssignment, usr_models.User)
            .join(usr_models.User, usr_models.User.id == wkp_models.WorkplaceAssignment.user_id)
            .where(
                wkp_models.WorkplaceAssignment.workplace_id == workplace_id,
                wkp_models.WorkplaceAssignment.is_active == True,  # noqa: E712
                wkp_models.WorkplaceAssignment.role.in_(list(roles)),
            )
            .order_by(wkp_models.WorkplaceAssignment.id)
            .offset(skip)
            .limit(limit)
        )
        return [
            wkp_schemas.WorkerRead(
                user_id=user.id,
                name=user.name,
                email=user.email,
                role=assignment.role,
                daily_rate=assignment.daily_rate,
                is_active=assignment.is_active,
                assigned_at=assignment.assigned_at,
            )
            for assignment, user in (await db.execute(statement)).all()
        ]

    async def get_worker(
        self, db: AsyncSession, *, workplace_id: int, user_id: int
    ) -> Optional[wkp_schemas.WorkerRead]:
        statement = (
            select(wkp_models.WorkplaceAssignment, usr_models.User)
            .join(usr_models.User, usr_models.User.id == wkp_models.WorkplaceAssignment.user_id)
            .where(
                wkp_models.WorkplaceAssignment.workplace_id == workplace_id,
                wkp_models.WorkplaceAssignment.user_id == user_id,
            )
        )
        row = (await db.execute(statement)).first()
        if row is None:
            return None
        assignment, user = row
        return wkp_schemas.WorkerRead(
            user_id=user.id,
            name=user.name,
            email=user.email,
            role=assignment.role,
            daily_rate=assignment.daily_rate,
            is_active=assignment.is_active,
            assigned_at=assignment.assigned_at,
        )

    async def list_for_user(
        self, db: AsyncSession, *, user_id: int
    ) -> List[Tuple[wkp_models.WorkplaceAssignment, wkp_models.Workplace]]:
        """사용자의 활성 배치와 작업장 정보."""
        statement = (
            select(wkp_models.WorkplaceAssignment, wkp_models.Workplace)
            .join(wkp_models.Workplace, wkp_models.Workplace.id == wkp_models.WorkplaceAssignment.workplace_id)
            .where(
                wkp_models.WorkplaceAssignment.user_id == user_id,
                wkp_models.WorkplaceAssignment.is_active == True,  # noqa: E712
            )
            .order_by(wkp_models.WorkplaceAssignment.id)
        )
        return [(assignment, wp) for assignment, wp in (await db.execute(statement)).all()]

    async def assign_many(
        self,
        db: AsyncSession,
        *,
        workplace_id: int,
        obj_in: wkp_schemas.WorkerAssign,
        assigned_by_id: int,
    ) -> wkp_schemas.WorkerAssignResult:
        """
        사용자들을 배치합니다. 이미 활성 배치된 사용자는 건너뛰고, 비활성 배치는 재활성화합니다.
        """
        result = wkp_schemas.WorkerAssignResult()
        now = datetime.now(UTC)
        for user_id in dict.fromkeys(obj_in.user_ids):
            existing = await self.get_assignment(db, workplace_id=workplace_id, user_id=user_id)
            if existing is not None and existing.is_active:
                result.skipped.append(user_id)
                continue
            if existing is None:
                db.add(wkp_models.WorkplaceAssignment(
                    workplace_id=workplace_id,
                    user_id=user_id,
                    role=obj_in.role,
                    daily_rate=obj_in.daily_rate,
                    assigned_by_id=assigned_by_id,
                    assigned_at=now,
                ))
                result.assigned.append(user_id)
            else:
                existing.role = obj_in.role
                existing.daily_rate = obj_in.daily_rate
                existing.is_active = True
                existing.assigned_by_id = assigned_by_id
                existing.assigned_at = now
                existing.removed_at = None
                db.add(existing)
                result.reactivated.append(user_id)
        await db.commit()
        logger.info(
            "Workplace %s: assigned=%s reactivated=%s skipped=%s",
            workplace_id, result.assigned, result.reactivated, result.skipped
        )
        return result

    async def deactivate(
        self, db: AsyncSession, *, db_obj: wkp_models.WorkplaceAssignment
    ) -> wkp_models.WorkplaceAssignment:
        db_obj.is_active = False
        db_obj.removed_at = datetime.now(UTC)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


assignment = CRUDWorkplaceAssignment()


# =============================================================================
# 3. workplace_geofences 테이블 CRUD
# =============================================================================
class CRUDWorkplaceGeofence(CRUDBase[wkp_models.WorkplaceGeofence, wkp_schemas.GeofenceSet, wkp_schemas.GeofenceSet]):
    def __init__(self):
        super().__init__(model=wkp_models.WorkplaceGeofence)

    async def get_by_workplace(self, db: AsyncSession, *, workplace_id: int) -> Optional[wkp_models.WorkplaceGeofence]:
        return await self.get_by_attribute(db, attribute="workplace_id", value=workplace_id)

    async def upsert(
        self, db: AsyncSession, *, workplace_id: int, obj_in: wkp_schemas.GeofenceSet, set_by_id: int
    ) -> wkp_models.WorkplaceGeofence:
        db_obj = await self.get_by_workplace(db, workplace_id=workplace_id)
        if db_obj is None:
            return await self.create(db, obj_in=obj_in, workplace_id=workplace_id, set_by_id=set_by_id)
        db_obj.set_by_id = set_by_id
        db_obj.updated_at = datetime.now(UTC)
        return await self.update(db, db_obj=db_obj, obj_in=obj_in)


geofence = CRUDWorkplaceGeofence()
