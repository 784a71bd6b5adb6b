# app/core/permissions.py

"""
조직/작업장 역할 기반 권한 검사 의존성(Dependency)을 정의하는 모듈입니다.

라우터에서 다음과 같이 사용합니다.

    access: OrgAccess = Depends(require_org_role(OrgRole.MANAGER))

검사 순서:
1. 대상 조직/작업장이 없으면 404
2. 시스템 SUPERADMIN이면 가중치 검사 없이 통과 (해당 계층의 최상위 역할로 취급)
3. 소속/배치가 없으면 403
4. 역할 가중치가 부족하면 403
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_session
from app.core.roles import (
    OrgRole,
    WorkplaceRole,
    has_sufficient_weight,
    highest_role,
    is_superadmin,
)
from app.core.security import get_current_active_user
from app.domains.usr import models as usr_models
from app.domains.org import models as org_models
from app.domains.org import crud as org_crud
from app.domains.wkp import models as wkp_models
from app.domains.wkp import crud as wkp_crud

logger = logging.getLogger(__name__)


@dataclass
class OrgAccess:
    """조직 권한 검사를 통과한 호출자 정보"""
    user: usr_models.User
    org: org_models.Organization
    role: OrgRole
    is_superadmin: bool = False


@dataclass
class WorkplaceAccess:
    """작업장 권한 검사를 통과한 호출자 정보"""
    user: usr_models.User
    workplace: wkp_models.Workplace
    role: WorkplaceRole
    is_superadmin: bool = False


async def resolve_workplace_role(
    db: AsyncSession, *, user: usr_models.User, workplace_id: int
) -> Optional[WorkplaceRole]:
    """
    작업장에서 사용자가 행사하는 역할. SUPERADMIN은 최상위 역할, 배치가 없으면 None.
    """
    if is_superadmin(user.system_role):
        return highest_role(WorkplaceRole)
    assignment = await wkp_crud.assignment.get_active(db, workplace_id=workplace_id, user_id=user.id)
    return assignment.role if assignment else None


def require_org_role(min_role: OrgRole) -> Callable:
    """min_role 이상의 조직 역할을 요구하는 의존성을 반환합니다."""

    async def _org_guard(
        org_id: int,
        db: AsyncSession = Depends(get_session),
        current_user: usr_models.User = Depends(get_current_active_user),
    ) -> OrgAccess:
        org = await org_crud.organization.get(db, id=org_id)
        if not org:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")

        if is_superadmin(current_user.system_role):
            return OrgAccess(user=current_user, org=org, role=highest_role(OrgRole), is_superadmin=True)

        membership = await org_crud.membership.get_active(db, org_id=org_id, user_id=current_user.id)
        if membership is None:
            logger.info("User %s denied on org %s: not a member", current_user.id, org_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not a member of this organization."
            )
        if not has_sufficient_weight(OrgRole, membership.role, min_role):
            logger.info(
                "User %s denied on org %s: %s < %s", current_user.id, org_id, membership.role.value, min_role.value
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient organization privileges."
            )
        return OrgAccess(user=current_user, org=org, role=membership.role)

    return _org_guard


def require_workplace_role(min_role: WorkplaceRole) -> Callable:
    """min_role 이상의 작업장 역할을 요구하는 의존성을 반환합니다."""

    async def _workplace_guard(
        org_id: int,
        workplace_id: int,
        db: AsyncSession = Depends(get_session),
        current_user: usr_models.User = Depends(get_current_active_user),
    ) -> WorkplaceAccess:
        workplace = await wkp_crud.workplace.get(db, id=workplace_id)
        if not workplace or workplace.org_id != org_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workplace not found")

        if is_superadmin(current_user.system_role):
            return WorkplaceAccess(
                user=current_user, workplace=workplace, role=highest_role(WorkplaceRole), is_superadmin=True
            )

        assignment = await wkp_crud.assignment.get_active(db, workplace_id=workplace_id, user_id=current_user.id)
        if assignment is None:
            logger.info("User %s denied on workplace %s: not assigned", current_user.id, workplace_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not assigned to this workplace."
            )
        if not has_sufficient_weight(WorkplaceRole, assignment.role, min_role):
            logger.info(
                "User %s denied on workplace %s: %s < %s",
                current_user.id, workplace_id, assignment.role.value, min_role.value
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient workplace privileges."
            )
        return WorkplaceAccess(user=current_user, workplace=workplace, role=assignment.role)

    return _workplace_guard
