# app/domains/usr/routers.py

"""
'usr' 도메인 (사용자 및 인증)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

import logging
from typing import List, Optional
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel.ext.asyncio.session import AsyncSession

# 애플리케이션 설정 및 의존성 임포트
from app.core.config import settings
from app.core.database import get_session
from app.core import dependencies as deps
from app.core.roles import OrgRole, has_sufficient_weight, is_superadmin

from app.domains.org import crud as org_crud
from app.domains.wkp import crud as wkp_crud
from app.domains.att import crud as att_crud
from app.domains.att import schemas as att_schemas

# usr 도메인의 CRUD, 모델, 스키마
from . import crud as usr_crud
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)

# 라우터 인스턴스 생성 (prefix는 main.py에서 관리)
router = APIRouter(
    tags=["User Management (사용자 관리)"],
    responses={404: {"description": "Not found"}},
)

# 다른 사용자의 작업장/출석 이력을 볼 수 있는 조직 역할 (MANAGER 이상)
_VIEWER_ORG_ROLES = [role for role in OrgRole if has_sufficient_weight(OrgRole, role, OrgRole.MANAGER)]


async def _get_visible_user(db: AsyncSession, user_id: int, current_user: usr_models.User) -> usr_models.User:
    """
    본인, SUPERADMIN, 또는 같은 조직의 MANAGER 이상만 대상 사용자를 조회할 수 있습니다.
    """
    db_user = await usr_crud.user.get(db, id=user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if db_user.id == current_user.id or is_superadmin(current_user.system_role):
        return db_user
    if await org_crud.membership.shares_org_with_role(
        db, viewer_id=current_user.id, target_user_id=db_user.id, roles=_VIEWER_ORG_ROLES
    ):
        return db_user
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not enough permissions to view this user's records."
    )


# =============================================================================
# 1. 인증 (Authentication) 엔드포인트
# =============================================================================
@router.post("/auth/signup", response_model=usr_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="회원가입")
async def signup(
    user_in: usr_schemas.UserSignup,
    db: AsyncSession = Depends(get_session),
):
    """
    공개 회원가입. 시스템 역할은 항상 USER로 생성됩니다.
    """
    return await usr_crud.user.create(db, obj_in=user_in)


@router.post("/auth/token", response_model=usr_schemas.Token, summary="Access Token 획득")
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_session),
):
    """
    OAuth2 password 방식 로그인. username 필드에 이메일을 넣습니다.
    """
    user = await usr_crud.user.authenticate(db, email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    await usr_crud.user.mark_login(db, db_obj=user)
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = deps.create_access_token(data={"sub": user.email}, expires_delta=access_token_expires)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/auth/me", response_model=usr_schemas.UserRead, summary="현재 사용자 정보 조회")
async def read_users_me(current_user: usr_models.User = Depends(deps.get_current_active_user)):
    return current_user


# =============================================================================
# 2. 사용자 (User) 관리 엔드포인트
# =============================================================================
@router.post("/users", response_model=usr_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="새 사용자 생성")
async def create_user(
    user: usr_schemas.UserCreate,
    db: AsyncSession = Depends(get_session),
    current_superadmin: usr_models.User = Depends(deps.get_current_superadmin),
):
    return await usr_crud.user.create(db, obj_in=user)


@router.get("/users", response_model=List[usr_schemas.UserRead], summary="사용자 목록 조회")
async def read_users(
    db: AsyncSession = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    - SUPERADMIN은 모든 사용자를 조회할 수 있습니다.
    - 그 외 사용자는 자신의 정보만 조회합니다.
    """
    if not is_superadmin(current_user.system_role):
        return [current_user]
    return await usr_crud.user.get_multi(db, skip=skip, limit=limit)


@router.get("/users/{user_id}", response_model=usr_schemas.UserRead, summary="특정 사용자 조회")
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_user = await usr_crud.user.get(db, id=user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not is_superadmin(current_user.system_role) and db_user.id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions to view other user's information."
        )
    return db_user


@router.patch("/users/{user_id}", response_model=usr_schemas.UserRead, summary="사용자 정보 수정")
async def update_user(
    user_id: int,
    user_in: usr_schemas.UserUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    - SUPERADMIN은 모든 사용자 정보를 수정할 수 있습니다.
    - 일반 사용자는 자신의 정보만 수정할 수 있으며, 시스템 역할과 활성 상태는 변경할 수 없습니다.
    """
    db_user = await usr_crud.user.get(db, id=user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not is_superadmin(current_user.system_role):
        if db_user.id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions to update other user's information."
            )
        if {"system_role", "is_active"} & user_in.model_fields_set:
            logger.info("User %s denied: attempted to change own system_role/is_active", current_user.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only a superadmin can change system_role or is_active."
            )
    return await usr_crud.user.update(db, db_obj=db_user, obj_in=user_in)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="사용자 삭제")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_superadmin: usr_models.User = Depends(deps.get_current_superadmin),
):
    """
    ID로 사용자를 삭제합니다. SUPERADMIN 권한이 필요합니다.
    """
    db_user = await usr_crud.user.get(db, id=user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if db_user.id == current_superadmin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account.")

    await usr_crud.user.remove(db, id=user_id)
    return None


# =============================================================================
# 3. 사용자별 작업장 / 출석 이력
# =============================================================================
@router.get("/users/{user_id}/workplaces", response_model=List[usr_schemas.UserWorkplaceRead], summary="사용자 배치 작업장 목록")
async def read_user_workplaces(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_user = await _get_visible_user(db, user_id, current_user)
    rows = await wkp_crud.assignment.list_for_user(db, user_id=db_user.id)
    return [
        usr_schemas.UserWorkplaceRead(
            workplace_id=workplace.id,
            workplace_name=workplace.name,
            org_id=workplace.org_id,
            role=assignment.role,
            daily_rate=assignment.daily_rate,
            assigned_at=assignment.assigned_at,
        )
        for assignment, workplace in rows
    ]


@router.get("/users/{user_id}/attendance", response_model=List[att_schemas.AttendanceRead], summary="사용자 출석 이력")
async def read_user_attendance(
    user_id: int,
    start_date: Optional[date] = Query(None, description="검색 시작일 (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="검색 종료일 (YYYY-MM-DD)"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_user = await _get_visible_user(db, user_id, current_user)
    return await att_crud.attendance.list_for_user(
        db, user_id=db_user.id, start_date=start_date, end_date=end_date, skip=skip, limit=limit
    )
