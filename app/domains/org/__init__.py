# app/domains/org/__init__.py

"""
FastAPI 애플리케이션의 'org' 도메인 패키지입니다.

'org' 도메인은 조직(Organization)과 조직 구성원(OrgMembership), 그리고
구성원의 조직 내 역할(VIEWER~OWNER)을 관리합니다.

주요 서브모듈:
- `models.py`: 'org' 도메인 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사를 위한 Pydantic/SQLModel 스키마.
- `crud.py`: 'org' 도메인 테이블에 대한 비동기 CRUD 로직.
- `routers.py`: 'org' 도메인 데이터에 접근하기 위한 FastAPI API 엔드포인트 정의.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "WFM Organization Domain"
__description__ = "Manages organizations and their memberships."
__version__ = "0.1.0"
__all__ = []  # 'from app.domains.org import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
