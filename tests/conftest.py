"""
This file contains shared fixtures and configuration for the test suite.

Each test gets its own in-memory SQLite database: a fresh engine is created
inside the test's event loop and patched into `taskboard.db`, which is where
every DB handler looks up its session factory.
"""

import os

os.environ["TASKBOARD_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from collections.abc import AsyncGenerator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from taskboard import db as database  # noqa: E402
from taskboard.models.base import Base  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine(monkeypatch):
    """A private database for one test, wired in as the application DB."""
    engine = database.build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    monkeypatch.setattr(database, "app_engine", engine)
    monkeypatch.setattr(
        database, "AppAsyncSessionLocal", database.build_session_factory(engine)
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """A session on the test database, for tests that call services directly."""
    async with database.AppAsyncSessionLocal() as s:
        yield s


@pytest_asyncio.fixture
async def client(db_engine) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    HTTP client bound to a new application instance.

    ASGITransport does not run the lifespan, so the application never touches
    the engine configured from the environment.
    """
    from main import create_app

    transport = httpx.ASGITransport(app=create_app())
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as c:
        yield c


@pytest.fixture
def api(client):
    """Small helpers for the common calls, returning the decoded envelope."""

    class Api:
        async def create_user(self, name="Alice", email=None, **extra):
            body = {"name": name, "email": email or f"{name.lower()}@example.com"}
            body.update(extra)
            resp = await client.post("/api/users", json=body)
            assert resp.status_code == 201, resp.text
            return resp.json()["data"]

        async def create_task(self, name="Write report", **extra):
            body = {"name": name, "deadline": "2030-01-01T00:00:00Z"}
            body.update(extra)
            resp = await client.post("/api/tasks", json=body)
            assert resp.status_code == 201, resp.text
            return resp.json()["data"]

        async def user(self, user_id):
            resp = await client.get(f"/api/users/{user_id}")
            assert resp.status_code == 200, resp.text
            return resp.json()["data"]

        async def task(self, task_id):
            resp = await client.get(f"/api/tasks/{task_id}")
            assert resp.status_code == 200, resp.text
            return resp.json()["data"]

        async def all_users(self):
            return (await client.get("/api/users")).json()["data"]

        async def all_tasks(self):
            return (await client.get("/api/tasks", params={"limit": 1000})).json()[
                "data"
            ]

        async def assert_consistent(self):
            """Every user's pendingTasks equals the set derived from the tasks."""
            tasks = await self.all_tasks()
            for task in tasks:
                assert (task["assignedUser"] == "") == (
                    task["assignedUserName"] == "unassigned"
                ), task
            for user in await self.all_users():
                expected = {
                    t["_id"]
                    for t in tasks
                    if t["assignedUser"] == user["_id"] and not t["completed"]
                }
                assert len(user["pendingTasks"]) == len(set(user["pendingTasks"]))
                assert set(user["pendingTasks"]) == expected, user

    return Api()
