# app/domains/org/schemas.py

"""
'org' 도메인 (조직 및 구성원 관리)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from app.core.roles import OrgRole
from . import models as org_models


# =============================================================================
# 1. 조직 (Organization) 스키마
# =============================================================================
class OrganizationBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: org_models.OrgType = org_models.OrgType.COMPANY
    industry: org_models.Industry = org_models.Industry.OTHER
    status: org_models.OrgStatus = org_models.OrgStatus.ACTIVE
    description: Optional[str] = None
    website: Optional[str] = Field(None, max_length=255)
    address_line: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)


class OrganizationCreate(OrganizationBase):
    pass


class OrganizationUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[org_models.OrgType] = None
    industry: Optional[org_models.Industry] = None
    status: Optional[org_models.OrgStatus] = None
    description: Optional[str] = None
    website: Optional[str] = Field(None, max_length=255)
    address_line: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)


class OrganizationRead(OrganizationBase):
    id: int
    created_by_id: Optional[int] = None
    created_at: datetime = Field(..., description="레코드 생성 일시")
    updated_at: datetime = Field(..., description="레코드 마지막 업데이트 일시")


class OrganizationReadWithRole(OrganizationRead):
    """조직 목록 조회 시 호출자의 조직 내 역할을 함께 반환합니다 (SUPERADMIN은 None)."""
    my_role: Optional[OrgRole] = None


# =============================================================================
# 2. 조직 구성원 (OrgMembership) 스키마
# =============================================================================
class MemberAdd(SQLModel):
    user_id: int
    role: OrgRole = OrgRole.MEMBER


class MemberRoleUpdate(SQLModel):
    role: OrgRole


class MemberRead(SQLModel):
    """구성원 정보 (사용자 기본 정보 포함)"""
    user_id: int
    name: str
    email: str
    role: OrgRole
    is_active: bool
    joined_at: Optional[datetime] = None
    invited_by_id: Optional[int] = None


class MembershipRead(SQLModel):
    id: int
    org_id: int
    user_id: int
    role: OrgRole
    is_active: bool
    invited_by_id: Optional[int] = None
    joined_at: Optional[datetime] = None
    removed_at: Optional[datetime] = None
