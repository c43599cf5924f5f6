"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import AsyncGenerator
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from adapters.storage import LocalStorageAdapter, get_storage_adapter
from infrastructure.database.models import Base, Page, Post, User
from infrastructure.database.connection import get_db
from core.security import PasswordHasher, TokenService
from infrastructure.config import get_settings
from services.posts import apply_content, set_status

# Low bcrypt cost keeps the suite fast
password_hasher = PasswordHasher(rounds=4)
settings = get_settings()
token_service = TokenService(secret_key=settings.jwt_secret_key)

TEST_PASSWORD = "TestPassword123"

# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


async def make_user(
    db_session: AsyncSession,
    username: str,
    email: str | None = None,
    status: str = "active",
    **fields,
) -> User:
    user = User(
        id=str(uuid4()),
        email=email or f"{username}@example.com",
        username=username,
        password_hash=password_hasher.hash(TEST_PASSWORD),
        status=status,
        **fields,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def make_post(
    db_session: AsyncSession,
    user: User,
    title: str,
    slug: str | None = None,
    content: str = "Some **markdown** content.",
    status: str = "published",
    tags: list[str] | None = None,
    views: int = 0,
) -> Post:
    post = Post(
        id=str(uuid4()),
        user_id=user.id,
        title=title,
        slug=slug or title.lower().replace(" ", "-"),
        tags=tags or [],
        views=views,
    )
    apply_content(post, content)
    set_status(post, status)
    db_session.add(post)
    await db_session.commit()
    await db_session.refresh(post)
    return post


async def make_page(
    db_session: AsyncSession,
    user: User,
    slug: str,
    title: str,
    content: str = "Page body.",
    published: bool = True,
    nav_order: int = 0,
) -> Page:
    page = Page(
        id=str(uuid4()),
        user_id=user.id,
        slug=slug,
        title=title,
        content=content,
        content_html=f"<p>{content}</p>",
        published=published,
        nav_order=nav_order,
    )
    db_session.add(page)
    await db_session.commit()
    await db_session.refresh(page)
    return page


def headers_for(user: User) -> dict:
    access_token = token_service.create_access_token(user_id=user.id, username=user.username)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def create_user(db_session: AsyncSession):
    """Factory: ``await create_user("jane", status="suspended")``."""

    async def _create(username: str, **fields) -> User:
        return await make_user(db_session, username, **fields)

    return _create


@pytest.fixture
def create_post(db_session: AsyncSession):
    """Factory: ``await create_post(user, "Title", status="draft")``."""

    async def _create(user: User, title: str, **fields) -> Post:
        return await make_post(db_session, user, title, **fields)

    return _create


@pytest.fixture
def create_page(db_session: AsyncSession):
    """Factory: ``await create_page(user, "projects", "Projects")``."""

    async def _create(user: User, slug: str, title: str, **fields) -> Page:
        return await make_page(db_session, user, slug, title, **fields)

    return _create


@pytest.fixture
def login_headers():
    """Bearer headers for any user."""
    return headers_for


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    return await make_user(
        db_session,
        "testuser",
        email="test@example.com",
        display_name="Test User",
        bio="I write about testing.",
    )


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "otheruser", display_name="Other User")


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user."""
    return headers_for(test_user)


@pytest.fixture
def storage(tmp_path) -> LocalStorageAdapter:
    return LocalStorageAdapter(base_path=str(tmp_path / "uploads"))


@pytest.fixture
async def async_client(
    db_session: AsyncSession, storage: LocalStorageAdapter
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_adapter] = lambda: storage

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def site_client(async_client: AsyncClient) -> AsyncGenerator[AsyncClient, None]:
    """Client whose requests arrive on testuser's subdomain."""
    from main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testuser.minispace.dev"
    ) as client:
        yield client
