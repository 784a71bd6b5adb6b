# app/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 정의하는 모듈입니다.

- 데이터베이스 세션 관리 (get_db_session).
- 현재 인증된 사용자 정보 획득 (get_current_active_user 등, security.py에서 재노출).
- 조직/작업장 역할 검사 (require_org_role, require_workplace_role, permissions.py에서 재노출).
- 현재 시각 (get_clock)과 QR 토큰 서비스 (get_qr_service).
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.core.database import get_session as get_main_app_session
from app.core.qr import QrTokenService

# flake8: noqa
from app.core.security import (
    create_access_token,
    get_password_hash,
    verify_password,
    oauth2_scheme,
    get_current_user_from_token,
    get_current_active_user,
    get_current_superadmin,
)
from app.core.permissions import (
    OrgAccess,
    WorkplaceAccess,
    require_org_role,
    require_workplace_role,
    resolve_workplace_role,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    app.core.database.get_session을 래핑한 비동기 세션 의존성입니다.
    """
    async for session in get_main_app_session():
        yield session


def get_clock() -> Clock:
    """
    현재 시각 제공자. 테스트에서는 app.dependency_overrides로 고정 시각을 주입합니다.
    """
    return utc_now


def get_qr_service(clock: Clock = Depends(get_clock)) -> QrTokenService:
    """
    설정의 QR_SECRET으로 QR 토큰 서비스를 만듭니다.
    키가 없으면 QrConfigurationError가 발생하며 main.py의 핸들러가 500으로 변환합니다.
    """
    secret = settings.QR_SECRET.get_secret_value() if settings.QR_SECRET else None
    return QrTokenService(secret, clock=clock)
