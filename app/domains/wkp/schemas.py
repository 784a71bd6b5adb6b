# app/domains/wkp/schemas.py

"""
'wkp' 도메인 (작업장, 작업자 배치, 지오펜스)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Any, Dict, List, Optional
from datetime import date, datetime
from enum import Enum
from sqlmodel import SQLModel, Field
from pydantic import model_validator

from app.core.roles import WorkplaceRole
from . import models as wkp_models


# =============================================================================
# 1. 작업장 (Workplace) 스키마
# =============================================================================
class WorkplaceBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: wkp_models.WorkplaceType = wkp_models.WorkplaceType.OTHER
    status: wkp_models.WorkplaceStatus = wkp_models.WorkplaceStatus.ACTIVE
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = Field(None, ge=0)


class WorkplaceCreate(WorkplaceBase):
    @model_validator(mode="after")
    def check_dates(self) -> "WorkplaceCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be earlier than start_date")
        return self


class WorkplaceUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[wkp_models.WorkplaceType] = None
    status: Optional[wkp_models.WorkplaceStatus] = None
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[float] = Field(None, ge=0)


class WorkplaceRead(WorkplaceBase):
    id: int
    org_id: int
    created_by_id: Optional[int] = None
    created_at: datetime = Field(..., description="레코드 생성 일시")
    updated_at: datetime = Field(..., description="레코드 마지막 업데이트 일시")


# =============================================================================
# 2. 작업자 배치 (WorkplaceAssignment) 스키마
# =============================================================================
class WorkerAssign(SQLModel):
    """여러 사용자를 같은 역할/일당으로 한 번에 배치합니다."""
    user_ids: List[int] = Field(..., min_length=1, max_length=200)
    role: WorkplaceRole = WorkplaceRole.WORKER
    daily_rate: Optional[float] = Field(None, ge=0)


class WorkerAssignResult(SQLModel):
    assigned: List[int] = []
    reactivated: List[int] = []
    skipped: List[int] = []


class WorkerUpdate(SQLModel):
    role: Optional[WorkplaceRole] = None
    daily_rate: Optional[float] = Field(None, ge=0)


class WorkerRead(SQLModel):
    user_id: int
    name: str
    email: str
    role: WorkplaceRole
    daily_rate: Optional[float] = None
    is_active: bool
    assigned_at: Optional[datetime] = None


# =============================================================================
# 3. 통계 / 활동 로그
# =============================================================================
class WorkplaceStats(SQLModel):
    workplace_id: int
    date: date
    headcount: int
    present_today: int
    attendance_rate: int = Field(..., description="출석률 (%, 정수 반올림)")
    pending_approvals: int
    labor_cost: float
    total_spent: float = Field(..., description="누적 지출 (현재는 인건비 합계)")
    budget: Optional[float] = None
    budget_remaining: Optional[float] = Field(None, description="budget - total_spent, 예산 미설정 시 null")
    last_calculated: datetime


class ActivityType(str, Enum):
    CLOCK_IN = "CLOCK_IN"
    CLOCK_OUT = "CLOCK_OUT"
    ASSIGNED = "ASSIGNED"
    UNASSIGNED = "UNASSIGNED"


class ActivityEvent(SQLModel):
    type: ActivityType
    user_id: int
    subject_name: Optional[str] = None
    actor_name: Optional[str] = None
    timestamp: datetime
    meta: Dict[str, Any] = {}


# =============================================================================
# 4. 지오펜스 (WorkplaceGeofence) 스키마
# =============================================================================
class GeofenceSet(SQLModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_meters: float = Field(..., gt=0, le=100000)


class GeofenceRead(GeofenceSet):
    workplace_id: int
    set_by_id: Optional[int] = None
    updated_at: Optional[datetime] = None
