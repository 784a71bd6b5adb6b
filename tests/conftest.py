# tests/conftest.py

import os
from typing import AsyncGenerator, Callable, Awaitable
from contextlib import asynccontextmanager
from datetime import datetime, UTC

# --- 테스트 환경 변수 ---
# app 모듈이 settings를 읽기 전에 설정해야 합니다.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt"
os.environ["QR_SECRET"] = "test-qr-secret"
os.environ["APP_ENV"] = "test"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402

from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

# app.main을 임포트하여 FastAPI 앱 인스턴스에 접근합니다.
from app.main import app as main_app  # noqa: E402
from app.core import dependencies as deps  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.core.security import get_password_hash  # noqa: E402
from app.core.roles import SystemRole, OrgRole, WorkplaceRole  # noqa: E402

# --- 모든 모델 임포트 ---
# SQLModel.metadata.create_all()이 모든 테이블을 인식하도록 합니다.
from app.domains.models import *  # noqa: F401, F403, E402

from app.domains.usr import models as usr_models  # noqa: E402
from app.domains.org import models as org_models  # noqa: E402
from app.domains.org import crud as org_crud  # noqa: E402
from app.domains.org import schemas as org_schemas  # noqa: E402
from app.domains.wkp import models as wkp_models  # noqa: E402
from app.domains.wkp import crud as wkp_crud  # noqa: E402
from app.domains.wkp import schemas as wkp_schemas  # noqa: E402

# 모든 테스트 사용자가 공유하는 비밀번호 (대/소문자, 숫자, 특수문자 포함)
TEST_PASSWORD = "Passw0rd!"
# 고정 시각: 2024-03-15 09:00 UTC
FIXED_NOW = datetime(2024, 3, 15, 9, 0, tzinfo=UTC)
WORKER_DAILY_RATE = 200.0


class FrozenClock:
    """테스트에서 now를 바꿔가며 쓸 수 있는 고정 시계."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# --- 데이터베이스 픽스처 ---
# 테스트마다 새 인메모리 SQLite DB를 만들어 격리합니다.
@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        await session.close()
        await test_engine.dispose()


@pytest.fixture(scope="function")
def frozen_clock() -> FrozenClock:
    return FrozenClock(FIXED_NOW)


@pytest.fixture(scope="function")
def app_overrides(db_session: AsyncSession, frozen_clock: FrozenClock):
    """
    DB 세션과 시계를 테스트용으로 교체합니다. 테스트가 끝나면 원래 상태로 되돌립니다.
    인증은 실제 토큰 검증 경로를 그대로 사용하므로 여러 사용자의 클라이언트를 동시에 쓸 수 있습니다.
    """
    def override_get_session():
        yield db_session

    original_overrides = main_app.dependency_overrides.copy()
    main_app.dependency_overrides.update({
        get_session: override_get_session,
        deps.get_db_session: override_get_session,
        deps.get_clock: lambda: frozen_clock,
    })
    try:
        yield main_app
    finally:
        main_app.dependency_overrides.clear()
        main_app.dependency_overrides.update(original_overrides)


# --- 사용자 팩토리 ---
@pytest_asyncio.fixture(scope="function")
def user_factory(db_session: AsyncSession) -> Callable[..., Awaitable[usr_models.User]]:
    """
    시스템 역할과 속성을 지정하여 테스트 사용자를 생성하는 팩토리 함수를 반환합니다.
    """
    async def _create_user(
        handle: str,
        password: str = TEST_PASSWORD,
        system_role: SystemRole = SystemRole.USER,
        is_active: bool = True,
        **kwargs,
    ) -> usr_models.User:
        user_data = {
            "email": f"{handle}@example.com",
            "name": handle.replace("_", " ").title(),
            "password_hash": get_password_hash(password),
            "system_role": system_role,
            "is_active": is_active,
            **kwargs,
        }
        user = usr_models.User(**user_data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _create_user


@pytest_asyncio.fixture(scope="function")
async def test_superadmin(user_factory: Callable) -> usr_models.User:
    return await user_factory("superadmin", system_role=SystemRole.SUPERADMIN)


@pytest_asyncio.fixture(scope="function")
async def test_owner(user_factory: Callable) -> usr_models.User:
    return await user_factory("owner")


@pytest_asyncio.fixture(scope="function")
async def test_manager(user_factory: Callable) -> usr_models.User:
    return await user_factory("manager")


@pytest_asyncio.fixture(scope="function")
async def test_worker(user_factory: Callable) -> usr_models.User:
    return await user_factory("worker")


@pytest_asyncio.fixture(scope="function")
async def test_outsider(user_factory: Callable) -> usr_models.User:
    """어느 조직에도 속하지 않은 사용자."""
    return await user_factory("outsider")


# --- 조직 / 작업장 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def test_org(
    db_session: AsyncSession,
    test_owner: usr_models.User,
    test_manager: usr_models.User,
    test_worker: usr_models.User,
) -> org_models.Organization:
    """
    owner(OWNER), manager(MANAGER), worker(MEMBER)가 속한 조직.
    """
    org = await org_crud.organization.create_with_owner(
        db_session, obj_in=org_schemas.OrganizationCreate(name="Acme Builders"), owner_id=test_owner.id
    )
    db_session.add(org_models.OrgMembership(
        org_id=org.id, user_id=test_manager.id, role=OrgRole.MANAGER, invited_by_id=test_owner.id
    ))
    db_session.add(org_models.OrgMembership(
        org_id=org.id, user_id=test_worker.id, role=OrgRole.MEMBER, invited_by_id=test_owner.id
    ))
    await db_session.commit()
    return org


@pytest_asyncio.fixture(scope="function")
async def test_workplace(
    db_session: AsyncSession,
    test_org: org_models.Organization,
    test_manager: usr_models.User,
    test_worker: usr_models.User,
) -> wkp_models.Workplace:
    """
    manager가 생성(SUPERVISOR)하고 worker가 WORKER(일당 200)로 배치된 작업장.
    """
    workplace = await wkp_crud.workplace.create_with_supervisor(
        db_session,
        org_id=test_org.id,
        obj_in=wkp_schemas.WorkplaceCreate(name="Site A", location="North Yard"),
        creator_id=test_manager.id,
    )
    db_session.add(wkp_models.WorkplaceAssignment(
        workplace_id=workplace.id,
        user_id=test_worker.id,
        role=WorkplaceRole.WORKER,
        daily_rate=WORKER_DAILY_RATE,
        assigned_by_id=test_manager.id,
    ))
    await db_session.commit()
    return workplace


# --- 인증 클라이언트 팩토리 ---
@pytest_asyncio.fixture(scope="function")
def authorized_client_factory(app_overrides) -> Callable[[usr_models.User, str], AsyncGenerator[AsyncClient, None]]:
    """
    특정 사용자로 로그인된 AsyncClient를 만드는 비동기 컨텍스트 매니저 팩토리를 반환합니다.
    """
    @asynccontextmanager
    async def _create_client_context(
        user: usr_models.User, password: str = TEST_PASSWORD
    ) -> AsyncGenerator[AsyncClient, None]:
        transport = ASGITransport(app=app_overrides)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            login_data = {"username": user.email, "password": password}
            res = await client.post("/api/v1/usr/auth/token", data=login_data)
            if res.status_code != 200:
                pytest.fail(f"Login failed for {user.email}: {res.text}")

            token = res.json()["access_token"]
            client.headers["Authorization"] = f"Bearer {token}"
            yield client

    return _create_client_context


@pytest_asyncio.fixture(scope="function")
async def client(app_overrides) -> AsyncGenerator[AsyncClient, None]:
    """인증되지 않은 클라이언트."""
    transport = ASGITransport(app=app_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def superadmin_client(authorized_client_factory, test_superadmin) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_superadmin) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def owner_client(authorized_client_factory, test_owner) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_owner) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def manager_client(authorized_client_factory, test_manager) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_manager) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def worker_client(authorized_client_factory, test_worker) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_worker) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def outsider_client(authorized_client_factory, test_outsider) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_outsider) as client:
        yield client
