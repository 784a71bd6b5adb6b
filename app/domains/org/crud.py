# app/domains/org/crud.py

"""
'org' 도메인의 CRUD 작업을 담당하는 모듈입니다.
조직 생성 시 생성자를 OWNER로 등록하고, 구성원 추가/역할 변경/제거(소프트 삭제)를 처리합니다.
"""

import logging
from datetime import datetime, UTC
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.core.roles import OrgRole
from app.domains.usr import models as usr_models
from app.domains.wkp import models as wkp_models
from app.domains.att import models as att_models
from . import models as org_models
from . import schemas as org_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. organizations 테이블 CRUD
# =============================================================================
class CRUDOrganization(CRUDBase[org_models.Organization, org_schemas.OrganizationCreate, org_schemas.OrganizationUpdate]):
    def __init__(self):
        super().__init__(model=org_models.Organization)

    async def create_with_owner(
        self, db: AsyncSession, *, obj_in: org_schemas.OrganizationCreate, owner_id: int
    ) -> org_models.Organization:
        """조직을 만들고 생성자를 OWNER 구성원으로 등록합니다."""
        db_org = org_models.Organization(**obj_in.model_dump(), created_by_id=owner_id)
        db.add(db_org)
        await db.flush()

        db.add(org_models.OrgMembership(org_id=db_org.id, user_id=owner_id, role=OrgRole.OWNER))
        await db.commit()
        await db.refresh(db_org)
        logger.info("Organization %s created by user %s", db_org.id, owner_id)
        return db_org

    async def get_multi_for_user(
        self, db: AsyncSession, *, user_id: int, skip: int = 0, limit: int = 100
    ) -> List[Tuple[org_models.Organization, OrgRole]]:
        """사용자가 활성 구성원으로 속한 조직과 그 역할 목록."""
        statement = (
            select(org_models.Organization, org_models.OrgMembership.role)
            .join(org_models.OrgMembership, org_models.OrgMembership.org_id == org_models.Organization.id)
            .where(
                org_models.OrgMembership.user_id == user_id,
                org_models.OrgMembership.is_active == True,  # noqa: E712
            )
            .order_by(org_models.Organization.id)
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(statement)
        return [(org, role) for org, role in result.all()]

    async def remove(self, db: AsyncSession, *, id: int) -> org_models.Organization:
        """
        조직과 하위 데이터(작업장, 배치, 지오펜스, 출석, 구성원)를 함께 삭제합니다.
        """
        db_org = await self.get(db, id=id)
        if not db_org:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")

        workplace_ids = select(wkp_models.Workplace.id).where(wkp_models.Workplace.org_id == id)
        await db.execute(delete(att_models.Attendance).where(att_models.Attendance.org_id == id))
        await db.execute(
            delete(wkp_models.WorkplaceAssignment).where(wkp_models.WorkplaceAssignment.workplace_id.in_(workplace_ids))
        )
        await db.execute(
            delete(wkp_models.WorkplaceGeofence).where(wkp_models.WorkplaceGeofence.workplace_id.in_(workplace_ids))
        )
        await db.execute(delete(wkp_models.Workplace).where(wkp_models.Workplace.org_id == id))
        await db.execute(delete(org_models.OrgMembership).where(org_models.OrgMembership.org_id == id))
        await db.delete(db_org)
        await db.commit()
        logger.info("Organization %s deleted", id)
        return db_org


organization = CRUDOrganization()


# =============================================================================
# 2. org_memberships 테이블 CRUD
# =============================================================================
class CRUDOrgMembership(CRUDBase[org_models.OrgMembership, org_schemas.MemberAdd, org_schemas.MemberRoleUpdate]):
    def __init__(self):
        super().__init__(model=org_models.OrgMembership)

    async def get_membership(
        self, db: AsyncSession, *, org_id: int, user_id: int
    ) -> Optional[org_models.OrgMembership]:
        """활성 여부와 무관하게 조직-사용자 소속 레코드를 조회합니다."""
        return await self.get_one_filtered(db, filters={"org_id": org_id, "user_id": user_id})

    async def get_active(
        self, db: AsyncSession, *, org_id: int, user_id: int
    ) -> Optional[org_models.OrgMembership]:
        membership = await self.get_membership(db, org_id=org_id, user_id=user_id)
        if membership is None or not membership.is_active:
            return None
        return membership

    async def get_active_user_ids(self, db: AsyncSession, *, org_id: int, user_ids: Iterable[int]) -> set:
        """주어진 사용자 중 해당 조직의 활성 구성원인 사용자 ID 집합."""
        statement = select(org_models.OrgMembership.user_id).where(
            org_models.OrgMembership.org_id == org_id,
            org_models.OrgMembership.user_id.in_(list(user_ids)),
            org_models.OrgMembership.is_active == True,  # noqa: E712
        )
        result = await db.execute(statement)
        return set(result.scalars().all())

    async def list_members(
        self,
        db: AsyncSession,
        *,
        org_id: int,
        roles: Iterable[OrgRole],
        skip: int = 0,
        limit: int = 100,
    ) -> List[org_schemas.MemberRead]:
        """
        활성 구성원 중 roles에 포함된 역할만 사용자 정보와 함께 반환합니다.
        """
        statement = (
            select(org_models.OrgMembership, usr_models.User)
            .join(usr_models.User, usr_models.User.id == org_models.OrgMembership.user_id)
            .where(
                org_models.OrgMembership.org_id == org_id,
                org_models.OrgMembership.is_active == True,  # noqa: E712
                org_models.OrgMembership.role.in_(list(roles)),
            )
            .order_by(org_models.OrgMembership.id)
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(statement)
        return [
            org_schemas.MemberRead(
                user_id=user.id,
                name=user.name,
                email=user.email,
                role=membership.role,
                is_active=membership.is_active,
                joined_at=membership.joined_at,
                invited_by_id=membership.invited_by_id,
            )
            for membership, user in result.all()
        ]

    async def add_member(
        self, db: AsyncSession, *, org_id: int, obj_in: org_schemas.MemberAdd, invited_by_id: int
    ) -> org_models.OrgMembership:
        """
        구성원을 추가합니다. 비활성 소속이 있으면 새 역할로 재활성화하고,
        이미 활성 구성원이면 409를 반환합니다.
        """
        if not await db.get(usr_models.User, obj_in.user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        membership = await self.get_membership(db, org_id=org_id, user_id=obj_in.user_id)
        if membership is not None and membership.is_active:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member of this organization")

        now = datetime.now(UTC)
        if membership is None:
            membership = org_models.OrgMembership(
                org_id=org_id, user_id=obj_in.user_id, role=obj_in.role, invited_by_id=invited_by_id, joined_at=now
            )
        else:
            membership.role = obj_in.role
            membership.is_active = True
            membership.invited_by_id = invited_by_id
            membership.joined_at = now
            membership.removed_at = None

        db.add(membership)
        await db.commit()
        await db.refresh(membership)
        return membership

    async def change_role(
        self, db: AsyncSession, *, db_obj: org_models.OrgMembership, role: OrgRole
    ) -> org_models.OrgMembership:
        return await self.update(db, db_obj=db_obj, obj_in=org_schemas.MemberRoleUpdate(role=role))

    async def deactivate(self, db: AsyncSession, *, db_obj: org_models.OrgMembership) -> org_models.OrgMembership:
        """
        구성원을 소프트 삭제하고, 해당 조직 작업장의 배치도 함께 해제합니다.
        """
        now = datetime.now(UTC)
        db_obj.is_active = False
        db_obj.removed_at = now
        db.add(db_obj)

        workplace_ids = select(wkp_models.Workplace.id).where(wkp_models.Workplace.org_id == db_obj.org_id)
        await db.execute(
            update(wkp_models.WorkplaceAssignment)
            .where(
                wkp_models.WorkplaceAssignment.user_id == db_obj.user_id,
                wkp_models.WorkplaceAssignment.workplace_id.in_(workplace_ids),
                wkp_models.WorkplaceAssignment.is_active == True,  # noqa: E712
            )
            .values(is_active=False, removed_at=now)
        )
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def shares_org_with_role(
        self, db: AsyncSession, *, viewer_id: int, target_user_id: int, roles: Iterable[OrgRole]
    ) -> bool:
        """
        viewer가 roles 중 하나의 역할로 속한 조직에 target 사용자가 활성 구성원으로 있는지 확인합니다.
        """
        viewer_orgs = select(org_models.OrgMembership.org_id).where(
            org_models.OrgMembership.user_id == viewer_id,
            org_models.OrgMembership.is_active == True,  # noqa: E712
            org_models.OrgMembership.role.in_(list(roles)),
        )
        statement = (
            select(org_models.OrgMembership.id)
            .where(
                org_models.OrgMembership.user_id == target_user_id,
                org_models.OrgMembership.is_active == True,  # noqa: E712
                org_models.OrgMembership.org_id.in_(viewer_orgs),
            )
            .limit(1)
        )
        result = await db.execute(statement)
        return result.first() is not None


membership = CRUDOrgMembership()
