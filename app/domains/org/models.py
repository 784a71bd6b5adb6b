# app/domains/org/models.py

"""
'org' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

조직(organizations)과 조직 구성원(org_memberships) 테이블을 포함합니다.
구성원의 조직 내 역할은 app.core.roles.OrgRole을 사용합니다.
"""

from typing import Optional
from datetime import datetime, UTC
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from app.core.roles import OrgRole


class OrgType(str, Enum):
    COMPANY = "COMPANY"
    CONTRACTOR = "CONTRACTOR"
    COOPERATIVE = "COOPERATIVE"
    NGO = "NGO"
    GOVERNMENT = "GOVERNMENT"
    OTHER = "OTHER"


class Industry(str, Enum):
    CONSTRUCTION = "CONSTRUCTION"
    AGRICULTURE = "AGRICULTURE"
    MANUFACTURING = "MANUFACTURING"
    HOSPITALITY = "HOSPITALITY"
    LOGISTICS = "LOGISTICS"
    RETAIL = "RETAIL"
    SERVICES = "SERVICES"
    OTHER = "OTHER"


class OrgStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


# =============================================================================
# 1. organizations 테이블 모델
# =============================================================================
class OrganizationBase(SQLModel):
    """
    organizations 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="조직 고유 ID")
    name: str = Field(max_length=200, description="조직명")
    type: OrgType = Field(default=OrgType.COMPANY, description="조직 유형")
    industry: Industry = Field(default=Industry.OTHER, description="산업 분류")
    status: OrgStatus = Field(default=OrgStatus.ACTIVE, description="조직 상태")
    description: Optional[str] = Field(default=None, description="설명")
    website: Optional[str] = Field(default=None, max_length=255, description="웹사이트")
    address_line: Optional[str] = Field(default=None, max_length=255, description="주소")
    city: Optional[str] = Field(default=None, max_length=100, description="도시")
    country: Optional[str] = Field(default=None, max_length=100, description="국가")
    created_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        description="생성자 사용자 ID (FK)"
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


class Organization(OrganizationBase, table=True):
    __tablename__ = "organizations"


# =============================================================================
# 2. org_memberships 테이블 모델
# =============================================================================
class OrgMembershipBase(SQLModel):
    """
    조직-사용자 소속 관계. 제거 시 행을 지우지 않고 is_active=False, removed_at을 기록합니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    org_id: int = Field(
        sa_column=Column(ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
        description="조직 ID (FK)"
    )
    user_id: int = Field(
        sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        description="사용자 ID (FK)"
    )
    role: OrgRole = Field(default=OrgRole.MEMBER, description="조직 내 역할")
    is_active: bool = Field(default=True, description="소속 활성 여부")
    invited_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        description="추가한 사용자 ID (FK)"
    )
    joined_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="가입 일시"
    )
    removed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=True),
        description="제거 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


class OrgMembership(OrgMembershipBase, table=True):
    __tablename__ = "org_memberships"
    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
    )
