import datetime

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from dealership_reports.features.auth.models import User
from jose import jwt

from dealership_reports.core.config import ALGORITHM, SECRET_KEY
from dealership_reports.features.auth.security import create_access_token, get_password_hash, verify_password
from dealership_reports.features.auth.service import is_locked


# test password hashing and verification
def test_password_hashing():
    password = "test_password"
    hashed = get_password_hash(password)
    assert verify_password(password, hashed) is True
    assert verify_password("wrong_password", hashed) is False
    assert hashed != password


# test password hashing consistency
def test_password_hash_consistency():
    password = "test_password"
    hashed1 = get_password_hash(password)
    hashed2 = get_password_hash(password)
    assert hashed1 != hashed2, "Hashing the same password should yield different hash"


def test_lockout_window():
    now = datetime.datetime(2024, 3, 1, 12, tzinfo=datetime.timezone.utc)
    user = User(username="locked", email="locked@example.com", company_id="acme", hashed_password="x")
    assert is_locked(user, now) is False
    user.account_locked_until = now + datetime.timedelta(minutes=5)
    assert is_locked(user, now) is True
    # Naive values are read as UTC
    user.account_locked_until = datetime.datetime(2024, 3, 1, 11, 59)
    assert is_locked(user, now) is False


@pytest.mark.asyncio
async def test_login_records_last_login(client: TestClient):
    response = client.post("/api/v1/auth/token", data={"username": "companyadmin", "password": "password123"})
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]

    user = await User.get(username="companyadmin")
    assert user.last_login is not None
    assert user.is_first_login is False


@pytest.mark.asyncio
async def test_wrong_password_counts_failed_attempt(client: TestClient):
    response = client.post("/api/v1/auth/token", data={"username": "companyadmin", "password": "nope"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    user = await User.get(username="companyadmin")
    assert user.login_attempts == 1
    assert user.last_login is None


@pytest.mark.asyncio
async def test_unknown_user_is_unauthorized(client: TestClient):
    response = client.post("/api/v1/auth/token", data={"username": "ghost", "password": "password123"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_inactive_user_cannot_log_in(client: TestClient):
    await User.filter(username="companyadmin").update(is_active=False)
    response = client.post("/api/v1/auth/token", data={"username": "companyadmin", "password": "password123"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.asyncio
async def test_locked_user_cannot_log_in(client: TestClient):
    locked_until = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=1)
    await User.filter(username="companyadmin").update(account_locked_until=locked_until)
    response = client.post("/api/v1/auth/token", data={"username": "companyadmin", "password": "password123"})
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_reports_require_a_token(client: TestClient):
    response = client.get("/api/v1/reports/users/performance-metrics")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = client.get(
        "/api/v1/reports/users/performance-metrics", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_token_names_the_company(client: TestClient):
    response = client.post("/api/v1/auth/token", data={"username": "otheradmin", "password": "password123"})
    assert response.status_code == status.HTTP_200_OK
    claims = jwt.decode(response.json()["access_token"], SECRET_KEY, algorithms=[ALGORITHM])
    assert claims["sub"] == "otheradmin"
    assert claims["company"] == "globex"


@pytest.mark.asyncio
async def test_token_for_another_company_is_rejected(client: TestClient):
    user = await User.get(username="companyadmin")
    token = create_access_token(user)
    headers = {"Authorization": f"Bearer {token}"}
    response = client.get("/api/v1/reports/users/performance-metrics", headers=headers)
    assert response.status_code == status.HTTP_200_OK

    # Moved to another tenant after the token was issued
    await User.filter(id=user.id).update(company_id="globex")
    response = client.get("/api/v1/reports/users/performance-metrics", headers=headers)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
