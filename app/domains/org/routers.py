# app/domains/org/routers.py

"""
'org' 도메인 (조직 및 구성원 관리)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_session
from app.core import dependencies as deps
from app.core.roles import (
    OrgRole,
    allowed_roles_at_or_below,
    check_can_manage,
    check_role_change,
    check_role_grant,
    is_superadmin,
)
from app.domains.usr import models as usr_models

from . import crud as org_crud
from . import schemas as org_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Organization Management (조직 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 조직 (Organization) 엔드포인트
# =============================================================================
@router.post("", response_model=org_schemas.OrganizationRead, status_code=status.HTTP_201_CREATED, summary="새 조직 생성")
async def create_organization(
    org_in: org_schemas.OrganizationCreate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    조직을 생성합니다. 생성자는 OWNER로 등록됩니다.
    """
    return await org_crud.organization.create_with_owner(db, obj_in=org_in, owner_id=current_user.id)


@router.get("", response_model=List[org_schemas.OrganizationReadWithRole], summary="조직 목록 조회")
async def read_organizations(
    db: AsyncSession = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    - SUPERADMIN은 모든 조직을 조회합니다.
    - 그 외 사용자는 활성 구성원으로 속한 조직과 자신의 역할을 조회합니다.
    """
    if is_superadmin(current_user.system_role):
        orgs = await org_crud.organization.get_multi(db, skip=skip, limit=limit)
        return [org_schemas.OrganizationReadWithRole.model_validate(org) for org in orgs]

    rows = await org_crud.organization.get_multi_for_user(db, user_id=current_user.id, skip=skip, limit=limit)
    return [
        org_schemas.OrganizationReadWithRole.model_validate(org, update={"my_role": role})
        for org, role in rows
    ]


@router.get("/{org_id}", response_model=org_schemas.OrganizationReadWithRole, summary="특정 조직 조회")
async def read_organization(
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.VIEWER)),
):
    return org_schemas.OrganizationReadWithRole.model_validate(
        access.org, update={"my_role": None if access.is_superadmin else access.role}
    )


@router.patch("/{org_id}", response_model=org_schemas.OrganizationRead, summary="조직 정보 수정")
async def update_organization(
    org_in: org_schemas.OrganizationUpdate,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.ADMIN)),
):
    return await org_crud.organization.update(db, db_obj=access.org, obj_in=org_in)


@router.delete("/{org_id}", status_code=status.HTTP_204_NO_CONTENT, summary="조직 삭제")
async def delete_organization(
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.OWNER)),
):
    await org_crud.organization.remove(db, id=access.org.id)
    return None


# =============================================================================
# 2. 구성원 (Member) 엔드포인트
# =============================================================================
@router.get("/{org_id}/members", response_model=List[org_schemas.MemberRead], summary="구성원 목록 조회")
async def read_members(
    db: AsyncSession = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MEMBER)),
):
    """
    호출자의 역할 이하인 구성원만 반환합니다.
    """
    visible_roles = allowed_roles_at_or_below(OrgRole, access.role)
    return await org_crud.membership.list_members(
        db, org_id=access.org.id, roles=visible_roles, skip=skip, limit=limit
    )


@router.post("/{org_id}/members", response_model=org_schemas.MembershipRead, status_code=status.HTTP_201_CREATED, summary="구성원 추가")
async def add_member(
    member_in: org_schemas.MemberAdd,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    """
    기존 사용자를 조직에 추가합니다. 호출자보다 낮은 역할만 부여할 수 있습니다.
    """
    if not access.is_superadmin:
        check_role_grant(OrgRole, access.role, member_in.role)
    return await org_crud.membership.add_member(
        db, org_id=access.org.id, obj_in=member_in, invited_by_id=access.user.id
    )


@router.patch("/{org_id}/members/{user_id}", response_model=org_schemas.MembershipRead, summary="구성원 역할 변경")
async def update_member_role(
    user_id: int,
    role_in: org_schemas.MemberRoleUpdate,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    """
    호출자는 대상의 현재 역할과 새 역할 모두보다 높아야 합니다.
    """
    db_membership = await org_crud.membership.get_active(db, org_id=access.org.id, user_id=user_id)
    if not db_membership:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    if not access.is_superadmin:
        check_role_change(OrgRole, access.role, db_membership.role, role_in.role)

    logger.info(
        "Org %s: user %s role %s -> %s by user %s",
        access.org.id, user_id, db_membership.role.value, role_in.role.value, access.user.id
    )
    return await org_crud.membership.change_role(db, db_obj=db_membership, role=role_in.role)


@router.delete("/{org_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="구성원 제거")
async def remove_member(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    access: deps.OrgAccess = Depends(deps.require_org_role(OrgRole.MANAGER)),
):
    """
    구성원을 비활성화합니다 (소프트 삭제). 호출자는 대상보다 높은 역할이어야 합니다.
    """
    db_membership = await org_crud.membership.get_active(db, org_id=access.org.id, user_id=user_id)
    if not db_membership:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    if not access.is_superadmin:
        check_can_manage(OrgRole, access.role, db_membership.role)

    await org_crud.membership.deactivate(db, db_obj=db_membership)
    return None
