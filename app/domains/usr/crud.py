# app/domains/usr/crud.py

"""
'usr' 도메인의 CRUD 작업을 담당하는 모듈입니다.
비밀번호 해싱, 이메일 중복 검사, 로그인 인증을 포함합니다.
"""

import logging
from datetime import datetime, UTC
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.core.roles import SystemRole
from app.core.security import get_password_hash, verify_password
from app.domains.org import models as org_models
from app.domains.att import models as att_models
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)


class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, usr_schemas.UserUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.User)

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[usr_models.User]:
        """이메일로 사용자를 조회합니다."""
        return await self.get_by_attribute(db, attribute="email", value=email.lower())

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.UserSignup) -> usr_models.User:
        """
        새로운 사용자를 생성하며 비밀번호를 해싱하고 이메일 중복을 검사합니다.
        UserSignup으로 들어온 경우 시스템 역할은 항상 USER입니다.
        """
        email = obj_in.email.lower()
        if await self.get_by_email(db, email=email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

        user_data = obj_in.model_dump(exclude={"password", "email"})
        user_data.setdefault("system_role", SystemRole.USER)
        db_user = usr_models.User(
            **user_data,
            email=email,
            password_hash=get_password_hash(obj_in.password),
        )
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        logger.info("User created: id=%s role=%s", db_user.id, db_user.system_role.value)
        return db_user

    async def authenticate(self, db: AsyncSession, *, email: str, password: str) -> Optional[usr_models.User]:
        """이메일과 비밀번호로 사용자를 인증합니다."""
        user = await self.get_by_email(db, email=email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def mark_login(self, db: AsyncSession, *, db_obj: usr_models.User) -> usr_models.User:
        db_obj.last_login_at = datetime.now(UTC)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def update(self, db: AsyncSession, *, db_obj: usr_models.User, obj_in: usr_schemas.UserUpdate) -> usr_models.User:
        """
        사용자 정보를 업데이트합니다. 비밀번호가 포함되면 해싱하여 저장합니다.
        """
        update_data = obj_in.model_dump(exclude_unset=True)
        password = update_data.pop("password", None)
        for key, value in update_data.items():
            setattr(db_obj, key, value)
        if password:
            db_obj.password_hash = get_password_hash(password)
        db_obj.updated_at = datetime.now(UTC)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.User:
        """
        사용자를 삭제합니다. 조직 소속이나 출석 기록이 남아 있으면 삭제를 거부합니다.
        """
        user_to_delete = await self.get(db, id=id)
        if not user_to_delete:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        membership_stmt = select(org_models.OrgMembership.id).where(org_models.OrgMembership.user_id == id).limit(1)
        attendance_stmt = select(att_models.Attendance.id).where(att_models.Attendance.user_id == id).limit(1)
        if (await db.execute(membership_stmt)).first() or (await db.execute(attendance_stmt)).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete user: organization memberships or attendance records exist. "
                       "Deactivate the account instead."
            )
        return await super().delete(db, id=id)


user = CRUDUser()
