# app/domains/models/__init__.py

"""
이 파일은 모든 도메인의 SQLModel 모델들을 한 곳에서 중앙 관리하여,
다른 모듈에서 쉽게 임포트할 수 있도록 하는 역할을 합니다.
SQLModel.metadata가 모든 테이블을 인식하도록 보장합니다 (Alembic autogenerate 포함).
"""

# usr (User)
from app.domains.usr.models import User, JobCategory, SkillLevel

# org (Organization, OrgMembership)
from app.domains.org.models import Organization, OrgMembership, OrgType, Industry, OrgStatus

# wkp (Workplace, WorkplaceAssignment, WorkplaceGeofence)
from app.domains.wkp.models import (
    Workplace, WorkplaceAssignment, WorkplaceGeofence, WorkplaceType, WorkplaceStatus
)

# att (Attendance)
from app.domains.att.models import Attendance, AttendanceStatus, ApprovalStatus


#  `from app.domains.models import *` 구문으로 임포트될 모델 목록 정의
__all__ = [
    # usr
    "User", "JobCategory", "SkillLevel",
    # org
    "Organization", "OrgMembership", "OrgType", "Industry", "OrgStatus",
    # wkp
    "Workplace", "WorkplaceAssignment", "WorkplaceGeofence", "WorkplaceType", "WorkplaceStatus",
    # att
    "Attendance", "AttendanceStatus", "ApprovalStatus",
]
