# app/domains/att/schemas.py

"""
'att' 도메인 (출석)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

import datetime as dt
from typing import List, Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field
from pydantic import field_validator

from . import models as att_models


# =============================================================================
# 1. 관리자 출석 입력 스키마
# =============================================================================
class AttendanceMark(SQLModel):
    """관리자가 한 명의 출석을 기록할 때 사용하는 스키마"""
    user_id: int
    workplace_id: Optional[int] = None
    date: dt.date
    status: att_models.AttendanceStatus = att_models.AttendanceStatus.PRESENT
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    hours_worked: Optional[float] = Field(None, ge=0, le=24)
    shift_label: Optional[str] = Field(None, max_length=50)
    daily_rate: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class AttendanceBulk(SQLModel):
    """여러 건의 출석을 한 번에 기록합니다. 하나라도 유효하지 않으면 전체가 거부됩니다."""
    records: List[AttendanceMark] = Field(..., min_length=1, max_length=200)


class SheetEntry(SQLModel):
    user_id: int
    status: att_models.AttendanceStatus = att_models.AttendanceStatus.PRESENT
    hours_worked: Optional[float] = Field(None, ge=0, le=24)
    shift_label: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class AttendanceSheet(SQLModel):
    """작업장 출석부. 같은 날짜의 작업자 출석을 한 번에 기록합니다."""
    date: dt.date
    entries: List[SheetEntry] = Field(..., min_length=1, max_length=200)


class AttendanceUpdate(SQLModel):
    status: Optional[att_models.AttendanceStatus] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    hours_worked: Optional[float] = Field(None, ge=0, le=24)
    shift_label: Optional[str] = Field(None, max_length=50)
    daily_rate: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class AttendanceReject(SQLModel):
    rejection_reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("rejection_reason")
    @classmethod
    def strip_reason(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("rejection_reason must not be blank")
        return value


# =============================================================================
# 2. 셀프 출퇴근 / QR 스키마
# =============================================================================
class ClockIn(SQLModel):
    workplace_id: int
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = None


class ClockOut(SQLModel):
    workplace_id: int
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class QrGenerate(SQLModel):
    workplace_id: int
    date: Optional[dt.date] = Field(None, description="대상 날짜 (생략 시 오늘, UTC)")


class QrGenerateResponse(SQLModel):
    token: str
    qr_code: str = Field(..., description="PNG data URL")
    workplace_id: int
    date: dt.date
    expires_at: datetime


class QrScan(SQLModel):
    token: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


# =============================================================================
# 3. 응답 스키마
# =============================================================================
class AttendanceRead(SQLModel):
    id: int
    user_id: int
    org_id: int
    workplace_id: Optional[int] = None
    work_date: date
    status: att_models.AttendanceStatus
    approval_status: att_models.ApprovalStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    hours_worked: Optional[float] = None
    shift_label: Optional[str] = None
    daily_rate: Optional[float] = None
    amount_earned: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    marked_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AttendanceBulkResult(SQLModel):
    created: int
    updated: int
    records: List[AttendanceRead]
