# tests/domains/__init__.py

"""
FastAPI 애플리케이션의 도메인별 테스트 스위트 패키지입니다.

- `test_auth_n.py`: 회원가입, 로그인, 현재 사용자 조회.
- `test_usr_n.py`: 사용자 관리와 사용자별 작업장/출석 이력.
- `test_org_n.py`: 조직 및 구성원 관리, 역할 상승 방지.
- `test_wkp_n.py`: 작업장, 작업자 배치, 통계, 활동 로그, 지오펜스.
- `test_att_n.py`: 관리자 출석 기록, 출석부, 승인 워크플로우, 셀프 출퇴근.
- `test_qr_att_n.py`: QR 토큰 생성과 스캔 체크인.
"""

# 패키지 메타데이터 (선택 사항)
__title__ = "WFM Domain Tests"
__description__ = "Categorized tests for each business domain in WFM FastAPI application."
__version__ = "0.1.0"  # 도메인 테스트 패키지의 내부 버전
__all__ = []  # 이 패키지에서 'from tests.domains import *' 시 내보낼 이름 목록.
