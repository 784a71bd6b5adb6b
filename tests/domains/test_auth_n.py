# tests/domains/test_auth_n.py

"""
'usr' 도메인 내의 인증 관련 API 엔드포인트(회원가입, 로그인, 현재 사용자)에 대한 통합 테스트입니다.
"""

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.usr.models import User as UsrUser
from tests.conftest import TEST_PASSWORD

SIGNUP_URL = "/api/v1/usr/auth/signup"
TOKEN_URL = "/api/v1/usr/auth/token"
ME_URL = "/api/v1/usr/auth/me"


# =============================================================================
# 1. 회원가입
# =============================================================================
@pytest.mark.asyncio
async def test_signup_creates_plain_user(client: AsyncClient):
    """
    회원가입은 요청에 system_role이 있어도 항상 USER로 생성합니다.
    """
    response = await client.post(SIGNUP_URL, json={
        "email": "New.Person@Example.com",
        "name": "New Person",
        "password": "Str0ng!pass",
        "system_role": "SUPERADMIN",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new.person@example.com"
    assert data["system_role"] == "USER"
    assert data["is_active"] is True
    assert "password" not in data
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_signup_duplicate_email(client: AsyncClient, test_worker: UsrUser):
    response = await client.post(SIGNUP_URL, json={
        "email": test_worker.email,
        "name": "Duplicate",
        "password": "Str0ng!pass",
    })
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12"])
async def test_signup_rejects_weak_password(client: AsyncClient, password: str):
    response = await client.post(SIGNUP_URL, json={
        "email": "weak@example.com",
        "name": "Weak",
        "password": password,
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_signup_rejects_invalid_email(client: AsyncClient):
    response = await client.post(SIGNUP_URL, json={
        "email": "not-an-email",
        "name": "Nobody",
        "password": "Str0ng!pass",
    })
    assert response.status_code == 422


# =============================================================================
# 2. 로그인
# =============================================================================
@pytest.mark.asyncio
async def test_login_for_access_token_success(client: AsyncClient, test_worker: UsrUser):
    """
    올바른 이메일과 비밀번호로 로그인하여 액세스 토큰을 발급받는지 테스트합니다.
    """
    response = await client.post(TOKEN_URL, data={"username": test_worker.email, "password": TEST_PASSWORD})

    assert response.status_code == 200
    response_data = response.json()
    assert "access_token" in response_data
    assert response_data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_is_case_insensitive_on_email(client: AsyncClient, test_worker: UsrUser):
    response = await client.post(TOKEN_URL, data={"username": test_worker.email.upper(), "password": TEST_PASSWORD})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_records_last_login(client: AsyncClient, db_session: AsyncSession, test_worker: UsrUser):
    assert test_worker.last_login_at is None

    response = await client.post(TOKEN_URL, data={"username": test_worker.email, "password": TEST_PASSWORD})
    assert response.status_code == 200

    await db_session.refresh(test_worker)
    assert test_worker.last_login_at is not None


@pytest.mark.asyncio
async def test_login_for_access_token_wrong_password(client: AsyncClient, test_worker: UsrUser):
    """
    잘못된 비밀번호로 로그인 시도 시 401 UNAUTHORIZED 응답을 받는지 테스트합니다.
    """
    response = await client.post(TOKEN_URL, data={"username": test_worker.email, "password": "Wr0ng!pass"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient):
    response = await client.post(TOKEN_URL, data={"username": "ghost@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, user_factory):
    inactive = await user_factory("sleepy", is_active=False)
    response = await client.post(TOKEN_URL, data={"username": inactive.email, "password": TEST_PASSWORD})
    assert response.status_code == 400
    assert response.json()["detail"] == "Inactive user"


# =============================================================================
# 3. 현재 사용자
# =============================================================================
@pytest.mark.asyncio
async def test_read_users_me(worker_client: AsyncClient, test_worker: UsrUser):
    response = await worker_client.get(ME_URL)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == test_worker.id
    assert data["email"] == test_worker.email
    assert data["system_role"] == "USER"


@pytest.mark.asyncio
async def test_deactivated_user_token_is_refused(
    worker_client: AsyncClient, db_session: AsyncSession, test_worker: UsrUser
):
    """
    로그인 이후 계정이 비활성화되면 기존 토큰으로도 접근할 수 없습니다.
    """
    test_worker.is_active = False
    db_session.add(test_worker)
    await db_session.commit()

    response = await worker_client.get(ME_URL)
    assert response.status_code == 400
    assert response.json()["detail"] == "Inactive user"
