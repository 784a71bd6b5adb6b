# tests/core/__init__.py

"""
app.core 모듈(역할 계층, 서명, QR 토큰, 시계)에 대한 단위 테스트 패키지입니다.
"""
