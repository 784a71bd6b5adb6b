# app/domains/wkp/models.py

"""
'wkp' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

작업장(workplaces), 작업자 배치(workplace_assignments), 지오펜스(workplace_geofences)
테이블을 포함합니다. 배치의 작업장 내 역할은 app.core.roles.WorkplaceRole을 사용합니다.
"""

from typing import Optional
from datetime import date, datetime, UTC
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from app.core.roles import WorkplaceRole


class WorkplaceType(str, Enum):
    CONSTRUCTION_SITE = "CONSTRUCTION_SITE"
    FARM = "FARM"
    FACTORY = "FACTORY"
    WAREHOUSE = "WAREHOUSE"
    OFFICE = "OFFICE"
    OTHER = "OTHER"


class WorkplaceStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# =============================================================================
# 1. workplaces 테이블 모델
# =============================================================================
class WorkplaceBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True, description="작업장 고유 ID")
    org_id: int = Field(
        sa_column=Column(ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
        description="소속 조직 ID (FK)"
    )
    name: str = Field(max_length=200, description="작업장명")
    type: WorkplaceType = Field(default=WorkplaceType.OTHER, description="작업장 유형")
    status: WorkplaceStatus = Field(default=WorkplaceStatus.ACTIVE, description="작업장 상태")
    location: Optional[str] = Field(default=None, max_length=255, description="위치 설명")
    description: Optional[str] = Field(default=None, description="설명")
    address: Optional[str] = Field(default=None, max_length=255, description="주소")
    latitude: Optional[float] = Field(default=None, ge=-90, le=90, description="위도")
    longitude: Optional[float] = Field(default=None, ge=-180, le=180, description="경도")
    start_date: Optional[date] = Field(default=None, description="시작일")
    end_date: Optional[date] = Field(default=None, description="종료일")
    budget: Optional[float] = Field(default=None, ge=0, description="계획 예산")
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


class Workplace(WorkplaceBase, table=True):
    __tablename__ = "workplaces"


# =============================================================================
# 2. workplace_assignments 테이블 모델
# =============================================================================
class WorkplaceAssignmentBase(SQLModel):
    """
    작업장-작업자 배치. 해제 시 행을 지우지 않고 is_active=False, removed_at을 기록합니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    workplace_id: int = Field(
        sa_column=Column(ForeignKey("workplaces.id", ondelete="CASCADE"), nullable=False, index=True),
        description="작업장 ID (FK)"
    )
    user_id: int = Field(
        sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        description="작업자 사용자 ID (FK)"
    )
    role: WorkplaceRole = Field(default=WorkplaceRole.WORKER, description="작업장 내 역할")
    daily_rate: Optional[float] = Field(default=None, ge=0, description="일당")
    is_active: bool = Field(default=True, description="배치 활성 여부")
    assigned_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        description="배치한 사용자 ID (FK)"
    )
    assigned_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="배치 일시"
    )
    removed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=True),
        description="배치 해제 일시"
    )


class WorkplaceAssignment(WorkplaceAssignmentBase, table=True):
    __tablename__ = "workplace_assignments"
    __table_args__ = (
        UniqueConstraint("workplace_id", "user_id", name="uq_workplace_assignments_workplace_user"),
    )


# =============================================================================
# 3. workplace_geofences 테이블 모델
# =============================================================================
class WorkplaceGeofenceBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    workplace_id: int = Field(
        sa_column=Column(ForeignKey("workplaces.id", ondelete="CASCADE"), nullable=False, unique=True),
        description="작업장 ID (FK, 작업장당 1개)"
    )
    latitude: float = Field(ge=-90, le=90, description="중심 위도")
    longitude: float = Field(ge=-180, le=180, description="중심 경도")
    radius_meters: float = Field(gt=0, description="반경 (미터)")
    set_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        description="설정한 사용자 ID (FK)"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


class WorkplaceGeofence(WorkplaceGeofenceBase, table=True):
    __tablename__ = "workplace_geofences"
