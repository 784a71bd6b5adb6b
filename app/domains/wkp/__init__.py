# app/domains/wkp/__init__.py

"""
FastAPI 애플리케이션의 'wkp' 도메인 패키지입니다.

'wkp' 도메인은 조직에 속한 작업장(Workplace), 작업자 배치(WorkplaceAssignment),
지오펜스, 작업장 통계 및 활동 로그를 관리합니다.

주요 서브모듈:
- `models.py`: 'wkp' 도메인 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사를 위한 Pydantic/SQLModel 스키마.
- `crud.py`: 'wkp' 도메인 테이블에 대한 비동기 CRUD 로직.
- `routers.py`: 'wkp' 도메인 데이터에 접근하기 위한 FastAPI API 엔드포인트 정의.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "WFM Workplace Domain"
__description__ = "Manages workplaces, worker assignments and geofences."
__version__ = "0.1.0"
__all__ = []  # 'from app.domains.wkp import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
