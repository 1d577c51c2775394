"""
Root conftest for the pytest test suite.

This file contains the main fixtures that are used across the entire test suite.

Each test runs against a fresh, isolated in-memory SQLite database that is
initialised manually, which is the most reliable method for an async pytest
environment.

Key Fixtures:
- `anyio_backend`: Specifies the asyncio backend for pytest-asyncio.
- `initialize_test_db`: (autouse) Creates a fresh DB schema for each test and
  seeds two dealerships of the ACME company plus the report users.
- `app_for_testing`: Provides the FastAPI application instance with its production
  lifespan disabled to allow `initialize_test_db` to manage the test DB.
- `client`: Provides a non-authenticated TestClient.
- `dealerships`: The two seeded ACME dealerships, north first.
- `primary_admin_token`: Token and user of the ACME primary admin (sees everything).
- `company_admin_token`: Token and user of a plain ACME company admin.
- `restricted_admin_token`: Token and user of an ACME company super admin
  assigned to the north dealership only.
- `other_company_token`: Token and user of the primary admin of another company.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Generator, List

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from tortoise import Tortoise

from dealership_reports.core.config import MODEL_MODULES
from dealership_reports.features.auth.models import User
from dealership_reports.features.auth.security import get_password_hash
from dealership_reports.features.company.models import Dealership

# Import the app
from dealership_reports.main import app as actual_app

COMPANY_ID = "acme"
OTHER_COMPANY_ID = "globex"
PASSWORD = "password123"


async def add_user(username: str, company_id: str = COMPANY_ID, **extra) -> User:
    return await User.create(
        username=username,
        email=f"{username}@example.com",
        first_name=username.capitalize(),
        last_name="Fixture",
        company_id=company_id,
        hashed_password=get_password_hash(PASSWORD),
        **extra,
    )


async def seed_company():
    north = await Dealership.create(company_id=COMPANY_ID, name="North Motors")
    south = await Dealership.create(company_id=COMPANY_ID, name="South Motors")

    await add_user("primaryadmin", role="company_super_admin", is_primary_admin=True)
    await add_user("companyadmin", role="company_admin", dealership_ids=[north.id, south.id])
    await add_user("restrictedadmin", role="company_super_admin", dealership_ids=[north.id])
    await add_user("otheradmin", company_id=OTHER_COMPANY_ID, role="company_super_admin", is_primary_admin=True)


def get_token(app: FastAPI, username: str) -> str:
    with TestClient(app) as tc:
        response = tc.post("/api/v1/auth/token", data={"username": username, "password": PASSWORD})
        if response.status_code != 200:
            raise Exception(f"Could not get token for {username}")
        return response.json()["access_token"]


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """
    Specifies the asyncio backend for pytest-asyncio.
    """
    return "asyncio"


@pytest_asyncio.fixture(scope="function", autouse=True)
async def initialize_test_db() -> AsyncGenerator[None, None]:
    """
    Initializes the database for each test function.

    This async, autouse fixture creates a fresh in-memory database and schema
    for each test and tears it down afterwards.
    """
    test_db_config = {
        "connections": {"default": "sqlite://:memory:"},
        "apps": {
            "models": {
                "models": MODEL_MODULES,
                "default_connection": "default",
            }
        },
    }
    await Tortoise.init(config=test_db_config)
    await Tortoise.generate_schemas()
    await seed_company()

    yield

    await Tortoise.close_connections()


@pytest.fixture(scope="function")
def app_for_testing() -> Generator[FastAPI, Any, None]:
    """
    Provides a FastAPI application instance for testing, with its
    production lifespan manager disabled to allow the test DB fixture
    to manage the database connection.
    """
    original_lifespan = actual_app.router.lifespan_context

    @asynccontextmanager
    async def dummy_lifespan(app: FastAPI):
        yield

    actual_app.router.lifespan_context = dummy_lifespan

    yield actual_app

    # Restore the original lifespan context after the test
    actual_app.router.lifespan_context = original_lifespan


@pytest.fixture(scope="function")
def client(app_for_testing: FastAPI) -> Generator[TestClient, Any, None]:
    """
    Provides a non-authenticated starlette TestClient.
    """
    with TestClient(app_for_testing) as tc:
        yield tc


@pytest_asyncio.fixture(scope="function")
async def dealerships() -> List[Dealership]:
    return await Dealership.filter(company_id=COMPANY_ID).order_by("id")


@pytest_asyncio.fixture(scope="function")
async def primary_admin_token(app_for_testing: FastAPI) -> tuple[str, User]:
    user = await User.get(username="primaryadmin")
    return get_token(app_for_testing, user.username), user


@pytest_asyncio.fixture(scope="function")
async def company_admin_token(app_for_testing: FastAPI) -> tuple[str, User]:
    user = await User.get(username="companyadmin")
    return get_token(app_for_testing, user.username), user


@pytest_asyncio.fixture(scope="function")
async def restricted_admin_token(app_for_testing: FastAPI) -> tuple[str, User]:
    user = await User.get(username="restrictedadmin")
    return get_token(app_for_testing, user.username), user


@pytest_asyncio.fixture(scope="function")
async def other_company_token(app_for_testing: FastAPI) -> tuple[str, User]:
    user = await User.get(username="otheradmin")
    return get_token(app_for_testing, user.username), user
