# app/core/__init__.py

"""
FastAPI 애플리케이션의 핵심 구성 요소 패키지입니다.

주요 서브모듈은 다음과 같습니다:

- `config.py`: 애플리케이션 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 비동기 엔진과 세션 관리 (SQLModel 및 AsyncSQLAlchemy).
- `security.py`: 비밀번호 해싱, JWT 발급/검증, 현재 사용자 조회.
- `roles.py`: 조직/작업장 역할 가중치와 역할 부여/변경 규칙.
- `permissions.py`: 조직/작업장 역할 기반 라우터 가드.
- `signing.py`, `qr.py`: HMAC 서명과 QR 출석 토큰 생성/검증.
- `clock.py`: 주입 가능한 현재 시각(UTC).
- `crud_base.py`: 도메인 CRUD의 공통 기반 클래스.
- `dependencies.py`: FastAPI 의존성 주입에 사용하는 공통 의존성 함수들.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "WFM Core"
__description__ = "Core components for the WFM FastAPI application."
__version__ = "0.1.0"  # core 패키지의 버전
__all__ = []  # 'from app.core import *' 시 내보낼 이름 목록. 일반적으로 비워둡니다.
