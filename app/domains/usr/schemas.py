# app/domains/usr/schemas.py

"""
'usr' 도메인 (사용자 및 인증)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

import re
from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import BaseModel, EmailStr, field_validator

from app.core.roles import SystemRole, WorkplaceRole
from . import models as usr_models

# 대문자/소문자/숫자/특수문자를 각각 하나 이상 포함
_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9]"), "a special character"),
)


def validate_password_strength(password: str) -> str:
    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(password)]
    if missing:
        raise ValueError(f"Password must contain {', '.join(missing)}.")
    return password


# =============================================================================
# 1. 사용자 (User) 스키마
# =============================================================================
class UserBase(SQLModel):
    """사용자 정보의 기본 필드를 정의하는 스키마"""
    email: EmailStr = Field(..., max_length=255)
    name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=30)
    occupation: Optional[str] = Field(None, max_length=100)
    occupation_category: usr_models.JobCategory = usr_models.JobCategory.OTHER
    skill_level: usr_models.SkillLevel = usr_models.SkillLevel.INTERMEDIATE


class UserSignup(UserBase):
    """공개 회원가입 스키마 (시스템 역할은 항상 USER)"""
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password_strength(value)


class UserCreate(UserSignup):
    """SUPERADMIN이 사용자를 생성할 때 사용하는 스키마"""
    system_role: SystemRole = SystemRole.USER
    is_active: bool = True


class UserUpdate(SQLModel):
    """사용자 정보 수정을 위한 스키마"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = None
    occupation: Optional[str] = None
    occupation_category: Optional[usr_models.JobCategory] = None
    skill_level: Optional[usr_models.SkillLevel] = None
    system_role: Optional[SystemRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_password_strength(value)


class UserRead(UserBase):
    """
    사용자 정보 조회 스키마. 비밀번호 해시값은 제외됩니다.
    """
    id: int
    email: str
    system_role: SystemRole
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime = Field(..., description="레코드 생성 일시")
    updated_at: datetime = Field(..., description="레코드 마지막 업데이트 일시")


# =============================================================================
# 2. 사용자 소속 작업장 / 출석 이력 응답
# =============================================================================
class UserWorkplaceRead(BaseModel):
    """사용자가 배치된 작업장 정보"""
    workplace_id: int
    workplace_name: str
    org_id: int
    role: WorkplaceRole
    daily_rate: Optional[float] = None
    assigned_at: Optional[datetime] = None


# =============================================================================
# 3. 인증 토큰 (Token) 스키마
# =============================================================================
class Token(BaseModel):
    """JWT 토큰 응답 스키마"""
    access_token: str
    token_type: str
