# app/core/qr.py

"""
QR 출석 체크인 토큰 모듈입니다.

토큰은 (작업장 ID, 날짜, 만료 시각)을 HMAC-SHA256으로 서명한 자기 검증형 문자열로,
서버에 별도 레코드를 저장하지 않습니다. 스캔 시점에 토큰 자체의 내용으로 서명을 다시
계산하여 검증합니다.

토큰 형식: base64url( {"workplaceId":..,"date":"YYYY-MM-DD","exp":<epoch ms>,"sig":<hex>} )

검증 실패(형식 오류, 만료, 서명 불일치)는 모두 None 하나로 합쳐지며 예외를 던지지 않습니다.
"""

import base64
import binascii
import io
import json
import logging
import re
from datetime import date, datetime, time, UTC
from typing import Any, NamedTuple, Optional, Tuple, Union

import qrcode
from qrcode.constants import ERROR_CORRECT_L

from app.core.clock import Clock, epoch_millis, utc_now, utc_today
from app.core.signing import HmacSigner

logger = logging.getLogger(__name__)

# 서명 대상 필드 순서 (서명/검증 양쪽에서 동일하게 직렬화해야 합니다)
_PAYLOAD_KEYS = ("workplaceId", "date", "exp")
_TOKEN_KEYS = frozenset(_PAYLOAD_KEYS + ("sig",))
_END_OF_DAY = time(23, 59, 59, 999000)
_ISO_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class QrConfigurationError(RuntimeError):
    """QR 서명 키가 설정되지 않은 경우 발생하는 설정 오류."""


class QrTokenPayload(NamedTuple):
    workplace_id: str
    date: str
    exp: int

    def as_wire(self) -> dict:
        return {"workplaceId": self.workplace_id, "date": self.date, "exp": self.exp}


def _compact_json(data: dict) -> bytes:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _is_utf8_encodable(value: str) -> bool:
    # JSON에서 디코딩된 문자열에는 짝이 없는 서로게이트(\ud800 등)가 들어올 수 있습니다.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True)


def end_of_day(target: date) -> datetime:
    """해당 날짜 23:59:59.999 UTC."""
    return datetime.combine(target, _END_OF_DAY, tzinfo=UTC)


def end_of_day_millis(target: date) -> int:
    return epoch_millis(end_of_day(target))


def _parse_iso_date(value: str) -> Optional[date]:
    # YYYY-MM-DD 형식만 허용
    if not _ISO_DATE_RE.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class QrTokenService:
    """
    QR 출석 토큰 생성/검증 서비스.

    비밀 키와 시계를 생성자에서 주입받습니다. 전역 설정을 직접 읽지 않으므로
    테스트에서 임의의 키와 고정 시각을 넣을 수 있습니다.
    """

    def __init__(self, secret: Optional[str], clock: Clock = utc_now):
        if not secret:
            raise QrConfigurationError("QR_SECRET is not configured; QR attendance tokens cannot be signed.")
        self._signer = HmacSigner(secret)
        self._clock = clock

    # -------------------------------------------------------------------------
    # 생성
    # -------------------------------------------------------------------------
    def generate(self, workplace_id: str, target_date: Optional[Union[date, str]] = None) -> str:
        """
        작업장/날짜에 대한 토큰을 생성합니다. 날짜를 생략하면 현재 UTC 날짜를 사용합니다.
        잘못된 형식의 날짜 문자열은 ValueError를 발생시킵니다.
        """
        if not isinstance(workplace_id, str) or not workplace_id:
            raise ValueError("workplace_id must be a non-empty string")
        if not _is_utf8_encodable(workplace_id):
            raise ValueError("workplace_id must be valid UTF-8 text")

        if target_date is None:
            day = utc_today(self._clock)
        elif isinstance(target_date, datetime):
            raise ValueError("target_date must be a calendar date, not a datetime")
        elif isinstance(target_date, date):
            day = target_date
        else:
            day = _parse_iso_date(target_date)
            if day is None:
                raise ValueError(f"Invalid target date: {target_date!r} (expected YYYY-MM-DD)")

        payload = QrTokenPayload(workplace_id=workplace_id, date=day.isoformat(), exp=end_of_day_millis(day))
        sig = self._signer.sign(_compact_json(payload.as_wire()))
        return _b64url_encode(_compact_json({**payload.as_wire(), "sig": sig}))

    # -------------------------------------------------------------------------
    # 검증
    # -------------------------------------------------------------------------
    def verify(self, token: Any) -> Optional[QrTokenPayload]:
        """
        유효한 토큰이면 QrTokenPayload를, 그 외 모든 경우 None을 반환합니다.
        실패 사유는 호출자에게 구분하여 알리지 않습니다.
        """
        payload, sig = self._decode(token)
        if payload is None:
            logger.debug("QR token rejected: malformed")
            return None

        if epoch_millis(self._clock()) > payload.exp:
            logger.debug("QR token rejected: expired (workplace=%s, date=%s)", payload.workplace_id, payload.date)
            return None

        if not self._signer.verify(_compact_json(payload.as_wire()), sig):
            logger.warning("QR token rejected: signature mismatch (workplace=%s)", payload.workplace_id)
            return None

        return payload

    @staticmethod
    def _decode(token: Any) -> Tuple[Optional[QrTokenPayload], Optional[str]]:
        if not isinstance(token, str) or not token or not token.isascii():
            return None, None
        try:
            raw = _b64url_decode(token)
        except (binascii.Error, ValueError):
            return None, None
        # 같은 바이트열을 다르게 표현한 토큰(패딩 비트 변조 등)은 거부합니다.
        if _b64url_encode(raw) != token:
            return None, None
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return None, None

        if not isinstance(data, dict) or set(data) != _TOKEN_KEYS:
            return None, None
        workplace_id, day, exp, sig = data["workplaceId"], data["date"], data["exp"], data["sig"]
        if not isinstance(workplace_id, str) or not workplace_id or not _is_utf8_encodable(workplace_id):
            return None, None
        if not isinstance(day, str) or _parse_iso_date(day) is None:
            return None, None
        if not isinstance(exp, int) or isinstance(exp, bool):
            return None, None
        if not isinstance(sig, str):
            return None, None
        return QrTokenPayload(workplace_id=workplace_id, date=day, exp=exp), sig


# =============================================================================
# QR 이미지 렌더링
# =============================================================================
def render_qr_data_url(token: str) -> str:
    """토큰 문자열을 PNG QR 코드로 그려 data URL로 반환합니다."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(token)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
