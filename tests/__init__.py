# tests/__init__.py

"""
WFM FastAPI 애플리케이션의 테스트 스위트 패키지입니다.

테스트는 `pytest`와 `pytest-asyncio`를 기반으로 작성되며, 다음과 같이 구성됩니다.

- `core/`: 역할 계층, HMAC 서명, QR 토큰 등 DB가 필요 없는 핵심 모듈의 단위 테스트.
- `domains/`: usr, org, wkp, att 도메인 API에 대한 통합 테스트.
- `conftest.py`: 테스트용 SQLite DB 세션, 고정 시계, 사용자/조직/작업장 픽스처,
                 로그인된 AsyncClient 팩토리를 정의합니다.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "WFM API Tests"
__description__ = "Test suite for WFM FastAPI application."
__version__ = "0.1.0"  # 테스트 스위트의 내부 버전
__all__ = []  # 이 패키지에서 'from tests import *' 시 내보낼 이름 목록.
