# app/domains/usr/models.py

"""
'usr' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

시스템 사용자(users) 테이블과 사용자 속성에 쓰이는 Enum을 포함합니다.
시스템 역할(SystemRole)은 권한 판단 모듈(app.core.roles)에 정의되어 있습니다.
"""

from typing import Optional
from datetime import datetime, UTC
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from app.core.roles import SystemRole


class JobCategory(str, Enum):
    """직종 분류"""
    CONSTRUCTION = "CONSTRUCTION"
    AGRICULTURE = "AGRICULTURE"
    MANUFACTURING = "MANUFACTURING"
    HOSPITALITY = "HOSPITALITY"
    LOGISTICS = "LOGISTICS"
    SECURITY = "SECURITY"
    CLEANING = "CLEANING"
    OTHER = "OTHER"


class SkillLevel(str, Enum):
    """숙련도"""
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    EXPERT = "EXPERT"


# =============================================================================
# 1. users 테이블 모델
# =============================================================================
class UserBase(SQLModel):
    """
    users 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="사용자 고유 ID")
    email: str = Field(max_length=255, sa_column_kwargs={"unique": True}, description="로그인 이메일")
    name: str = Field(max_length=100, description="사용자 이름")
    password_hash: str = Field(max_length=255, description="해싱된 비밀번호")
    phone_number: Optional[str] = Field(default=None, max_length=30, description="전화번호")
    occupation: Optional[str] = Field(default=None, max_length=100, description="직업")
    occupation_category: JobCategory = Field(default=JobCategory.OTHER, description="직종 분류")
    skill_level: SkillLevel = Field(default=SkillLevel.INTERMEDIATE, description="숙련도")
    system_role: SystemRole = Field(default=SystemRole.USER, description="시스템 역할")
    is_active: bool = Field(default=True, description="계정 활성 여부")

    last_login_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=True),
        description="마지막 로그인 일시"
    )
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


class User(UserBase, table=True):
    """
    users 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "users"
