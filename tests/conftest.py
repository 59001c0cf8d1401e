"""Pytest configuration and fixtures."""
import os

# Settings are read once at import; point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from typing import AsyncGenerator, Optional

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from cnc_admin.database import Base, get_session_maker
from cnc_admin.main import app
from cnc_admin.models.admin_user import AdminUser, AdminRole
from cnc_admin.services.auth import AuthService
from cnc_admin.services.passwords import hash_password
from cnc_admin.services.seed import seed_permissions, seed_role_permissions

DEFAULT_PASSWORD = "password123"


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Test database engine on a throwaway SQLite file.

    A file rather than :memory: so the audit logger's own sessions see the
    same data as the request session.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine) -> async_sessionmaker:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def seeded(db_session: AsyncSession) -> None:
    """Permission catalogue and role defaults."""
    permissions = await seed_permissions(db_session)
    await seed_role_permissions(db_session, permissions)
    await db_session.commit()


async def make_user(
    db_session: AsyncSession,
    username: str,
    role: AdminRole,
    password: str = DEFAULT_PASSWORD,
    is_active: bool = True,
    password_hash: Optional[str] = None,
) -> AdminUser:
    user = AdminUser(
        username=username,
        email=f"{username}@example.org",
        password_hash=password_hash or hash_password(password),
        full_name=username.replace("_", " ").title(),
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.commit()
    return user


async def make_token(db_session: AsyncSession, user: AdminUser) -> str:
    session = await AuthService(db_session).create_session(user, "127.0.0.1", "pytest")
    await db_session.commit()
    return session.session_token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def super_admin(db_session, seeded) -> AdminUser:
    return await make_user(db_session, "root_admin", AdminRole.SUPER_ADMIN)


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session, seeded) -> AdminUser:
    return await make_user(db_session, "office_admin", AdminRole.ADMIN)


@pytest_asyncio.fixture(scope="function")
async def manager_user(db_session, seeded) -> AdminUser:
    return await make_user(db_session, "field_manager", AdminRole.MANAGER)


@pytest_asyncio.fixture(scope="function")
async def viewer_user(db_session, seeded) -> AdminUser:
    return await make_user(db_session, "read_only", AdminRole.VIEWER)


@pytest_asyncio.fixture(scope="function")
async def super_admin_token(db_session, super_admin) -> str:
    return await make_token(db_session, super_admin)


@pytest_asyncio.fixture(scope="function")
async def admin_token(db_session, admin_user) -> str:
    return await make_token(db_session, admin_user)


@pytest_asyncio.fixture(scope="function")
async def manager_token(db_session, manager_user) -> str:
    return await make_token(db_session, manager_user)


@pytest_asyncio.fixture(scope="function")
async def viewer_token(db_session, viewer_user) -> str:
    return await make_token(db_session, viewer_user)


@pytest_asyncio.fixture(scope="function")
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client bound to the test database."""
    # get_db and the audit logger both resolve sessions through this
    app.dependency_overrides[get_session_maker] = lambda: session_maker

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
