# app/core/signing.py

"""
HMAC-SHA256 서명/검증 기본 모듈입니다.
QR 출석 토큰(app/core/qr.py)이 이 모듈 위에 구현됩니다.
"""

import hashlib
import hmac
from typing import Any


class HmacSigner:
    """비밀 키 하나로 바이트열에 서명하고, 상수 시간 비교로 서명을 검증합니다."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("HMAC secret must be a non-empty string")
        self._key = secret.encode("utf-8")

    def sign(self, data: bytes) -> str:
        """소문자 16진수 HMAC-SHA256 서명 (64자)."""
        return hmac.new(self._key, data, hashlib.sha256).hexdigest()

    def verify(self, data: bytes, signature: Any) -> bool:
        """
        서명이 일치하면 True. 문자열이 아니거나 길이가 다르면 예외 없이 False를 반환합니다.
        """
        if not isinstance(signature, str) or not signature.isascii():
            return False
        expected = self.sign(data)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
