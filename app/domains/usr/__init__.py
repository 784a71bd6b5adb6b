# app/domains/usr/__init__.py

"""
FastAPI 애플리케이션의 'usr' 도메인 패키지입니다.

'usr' 도메인은 시스템 사용자 계정, 시스템 역할(USER/SUPPORT/SUPERADMIN),
그리고 JWT 로그인 인증을 관리합니다.

주요 서브모듈:
- `models.py`: 'usr' 도메인 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청 및 응답 유효성 검사를 위한 Pydantic/SQLModel 스키마.
- `crud.py`: 'usr' 도메인 테이블에 대한 비동기 CRUD 로직.
- `routers.py`: 'usr' 도메인 데이터에 접근하기 위한 FastAPI API 엔드포인트 정의.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "WFM User Domain"
__description__ = "Manages user accounts, system roles and authentication."
__version__ = "0.1.0"
__all__ = []  # 'from app.domains.usr import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
