# app/domains/att/__init__.py

"""
FastAPI 애플리케이션의 'att' 도메인 패키지입니다.

'att' 도메인은 출석 기록(Attendance)을 관리합니다. 관리자 수기 기록과 승인 워크플로우,
작업자 셀프 출퇴근, 서명된 QR 토큰을 이용한 체크인을 포함합니다.

주요 서브모듈:
- `models.py`: 'att' 도메인 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사를 위한 Pydantic/SQLModel 스키마.
- `crud.py`: 'att' 도메인 테이블에 대한 비동기 CRUD 로직.
- `routers.py`: 'att' 도메인 데이터에 접근하기 위한 FastAPI API 엔드포인트 정의.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "WFM Attendance Domain"
__description__ = "Manages attendance records, approvals, self clock-in and QR check-in."
__version__ = "0.1.0"
__all__ = []  # 'from app.domains.att import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
