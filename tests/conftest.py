"""
Test configuration and fixtures for the Foghorn API and workers.

Every test gets its own temporary SQLite database (aiosqlite), so tests never
share rows and can run in any order.
"""
import os
import tempfile

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.mktemp(suffix='.db')}")
os.environ.setdefault("FORCE_IN_MEMORY_RATE_LIMITER", "true")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from foghorn.features.auth.models.user import User
from foghorn.features.auth.utils.security import create_access_token, hash_password
from foghorn.features.pages.models.page import Page
from foghorn.features.sites.models.site import Site
from foghorn.features.teams.models.team import Team, TeamMember
from foghorn.middlewares.rate_limit import reset_rate_limiter
from foghorn.platform.db.session import get_db, init_db


def make_audit_report(**overrides) -> dict:
    """A stored audit report where every category passes unless overridden."""
    report = {
        "fetch_time": "2025-01-01T00:00:00Z",
        "final_url": "https://example.com",
        "duration_ms": 1000,
        "performance": {"score": 1, "audits": []},
        "accessibility": {"score": 1, "audits": []},
        "best_practices": {"score": 1, "audits": []},
        "seo": {"score": 1, "audits": []},
        "field_data": None,
    }
    report.update(overrides)
    return report


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def clear_rate_limits():
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
async def client(session_factory):
    """HTTP client against the app, wired to the per-test database."""
    from foghorn.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def create_user(db):
    counter = {"n": 0}

    async def _create_user(email: str = None, password: str = "testpassword123") -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _create_user


@pytest.fixture
def create_team(db):
    async def _create_team(owner_id: str, name: str = "Test Team") -> Team:
        team = Team(name=name)
        db.add(team)
        await db.flush()
        db.add(TeamMember(team_id=team.id, user_id=owner_id))
        await db.commit()
        await db.refresh(team)
        return team

    return _create_team


@pytest.fixture
def create_site(db):
    async def _create_site(team_id: str, domain: str = "example.com", sitemap_path: str = "/sitemap.xml", **fields) -> Site:
        site = Site(team_id=team_id, domain=domain, sitemap_path=sitemap_path, **fields)
        db.add(site)
        await db.commit()
        await db.refresh(site)
        return site

    return _create_site


@pytest.fixture
def create_page(db):
    async def _create_page(site_id: str, path: str = "/", url: str = None, **fields) -> Page:
        page = Page(site_id=site_id, path=path, url=url or f"https://example.com{path}", **fields)
        db.add(page)
        await db.commit()
        await db.refresh(page)
        return page

    return _create_page


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
