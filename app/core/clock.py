# app/core/clock.py

"""
현재 시각을 제공하는 시계(clock) 유틸리티 모듈입니다.

QR 토큰 만료 판단, 출퇴근 시각 기록 등 '지금'이 필요한 모든 곳은
이 모듈의 Clock 타입을 주입받아 사용합니다. 테스트에서는 고정된 시각을 돌려주는
람다로 교체할 수 있습니다.
"""

from datetime import date, datetime, timedelta, UTC
from typing import Callable, Optional

# 호출 시 timezone-aware(UTC) datetime을 반환하는 callable
Clock = Callable[[], datetime]

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now() -> datetime:
    """시스템 시계 기준 현재 UTC 시각."""
    return datetime.now(UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    DB에서 읽어온 naive datetime(예: SQLite)을 UTC aware 값으로 맞춥니다.
    이미 timezone 정보가 있으면 UTC로 변환만 합니다.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_today(clock: Clock) -> date:
    return clock().astimezone(UTC).date()


def epoch_millis(value: datetime) -> int:
    """datetime을 Unix epoch 밀리초(정수)로 변환합니다."""
    return (ensure_utc(value) - EPOCH) // timedelta(milliseconds=1)
