# app/domains/att/models.py

"""
'att' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

출석(attendances) 테이블은 관리자 수기 입력, 작업자 셀프 출퇴근, QR 체크인이
모두 같은 레코드를 공유합니다. (사용자, 작업장, 날짜) 조합당 한 건입니다.
"""

from typing import Optional
from datetime import date, datetime, UTC
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"
    ON_LEAVE = "ON_LEAVE"
    NOT_MARKED = "NOT_MARKED"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AttendanceBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True, description="출석 기록 ID")
    user_id: int = Field(
        sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        description="작업자 사용자 ID (FK)"
    )
    org_id: int = Field(
        sa_column=Column(ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True),
        description="조직 ID (FK)"
    )
    workplace_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("workplaces.id", ondelete="SET NULL"), nullable=True, index=True),
        description="작업장 ID (FK, 작업장 삭제 시 NULL)"
    )
    work_date: date = Field(index=True, description="근무일 (UTC 기준 날짜)")
    status: AttendanceStatus = Field(default=AttendanceStatus.NOT_MARKED, description="출석 상태")
    approval_status: ApprovalStatus = Field(default=ApprovalStatus.PENDING, description="승인 상태")

    check_in_time: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True), nullable=True), description="출근 시각"
    )
    check_out_time: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True), nullable=True), description="퇴근 시각"
    )
    hours_worked: Optional[float] = Field(default=None, ge=0, description="근무 시간")
    shift_label: Optional[str] = Field(default=None, max_length=50, description="근무조")
    daily_rate: Optional[float] = Field(default=None, ge=0, description="일당")
    amount_earned: Optional[float] = Field(default=None, ge=0, description="지급액 (근무시간/8 x 일당)")
    latitude: Optional[float] = Field(default=None, description="체크인 위도")
    longitude: Optional[float] = Field(default=None, description="체크인 경도")
    notes: Optional[str] = Field(default=None, description="비고")
    rejection_reason: Optional[str] = Field(default=None, description="반려 사유")

    marked_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        description="기록한 관리자 ID (FK)"
    )
    approved_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        description="승인/반려한 사용자 ID (FK)"
    )
    approved_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True), nullable=True), description="승인/반려 일시"
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


class Attendance(AttendanceBase, table=True):
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("user_id", "workplace_id", "work_date", name="uq_attendances_user_workplace_date"),
    )
