import os

# Must be set before the app (and its rate limiter / settings) is imported.
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENV_NAME"] = "test"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["JWT_RESET_SECRET"] = "test-reset-secret"
os.environ["APP_BASE_URL"] = "http://frontend.test"
os.environ["DEFAULT_AVATAR"] = "https://cdn.insighta.test/avatars/default.png"
os.environ.pop("REDIS_URL", None)

import re
import time
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.auth.constants import UserRole
from app.auth.models import User
from app.auth.store import UserStore
from app.auth.tokens import TokenIssuer
from app.auth.utils import configure_hashing, hash_password
from app.config import get_settings
from app.database import get_db
from app.email.send import Mailer, get_mailer
from app.exceptions import EmailDeliveryFailed
from app.main import app
from app.redis_client import get_redis
from shared.database.postgres import Base

configure_hashing(1)

API = "/api/v1"
DEFAULT_PASSWORD = "correct-horse-battery"
DEFAULT_AVATAR = os.environ["DEFAULT_AVATAR"]


# ── Collaborator doubles ──────────────────────────────────────────────────────

class FakeRedis:
    """The subset of redis.asyncio.Redis the service uses, with TTLs."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float]] = {}

    def _live(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= time.time():
            del self._data[key]
            return None
        return value

    async def setex(self, key: str, ttl: int, value) -> bool:
        self._data[key] = (str(value), time.time() + ttl)
        return True

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._live(key) is not None)

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self._data.pop(key, None) is not None)

    def keys_with_prefix(self, prefix: str) -> list[str]:
        return [key for key in self._data if key.startswith(prefix) and self._live(key)]


@dataclass
class SentEmail:
    to: str
    subject: str
    html: str


class FakeMailer(Mailer):
    """Records outgoing mail instead of talking to SMTP / Brevo."""

    def __init__(self, settings, *, fail: bool = False) -> None:
        super().__init__(settings)
        self.sent: list[SentEmail] = []
        self.fail = fail

    async def send(self, to_email: str, to_name: str, subject: str, html: str) -> None:
        if self.fail:
            raise EmailDeliveryFailed()
        self.sent.append(SentEmail(to_email, subject, html))

    def last_to(self, email: str) -> SentEmail:
        matching = [m for m in self.sent if m.to == email]
        assert matching, f"no email sent to {email}"
        return matching[-1]

    def last_code(self, email: str) -> str:
        match = re.search(r">(\d{6})<", self.last_to(email).html)
        assert match, "no verification code in email"
        return match.group(1)

    def last_reset_token(self, email: str) -> str:
        match = re.search(r"token=([A-Za-z0-9_\-\.]+)", self.last_to(email).html)
        assert match, "no reset link in email"
        return match.group(1)


# ── Database ──────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session) -> UserStore:
    return UserStore(db_session)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(get_settings())


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer(get_settings())


# ── HTTP client ───────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def async_client(
    session_factory, fake_redis, mailer
) -> AsyncGenerator[AsyncClient, None]:
    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Seeding helpers ───────────────────────────────────────────────────────────

@pytest.fixture
def create_user(session_factory):
    """Insert a user directly, bypassing the registration flow."""

    async def _create(
        email: str,
        *,
        username: str | None = None,
        password: str = DEFAULT_PASSWORD,
        verified: bool = True,
        role: UserRole = UserRole.USER,
        active: bool = True,
    ) -> User:
        async with session_factory() as session:
            user = User(
                username=username or email.split("@")[0],
                email=email,
                password_hash=hash_password(password),
                role=role,
                is_active=active,
                is_account_verified=verified,
            )
            session.add(user)
            await session.commit()
            return user

    return _create


@pytest.fixture
def login(async_client):
    """Log in and return the access token; the client's cookie jar is cleared."""

    async def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        response = await async_client.post(
            f"{API}/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        tokens = {
            "access": response.json()["access_token"],
            "refresh": set_cookies(response)["refresh_token"],
        }
        async_client.cookies.clear()
        return tokens

    return _login


def set_cookies(response) -> dict[str, str]:
    """Map cookie name → value from the raw Set-Cookie headers."""
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        cookies[name.strip()] = rest.split(";", 1)[0].strip().strip('"')
    return cookies


def set_cookie_headers(response) -> dict[str, str]:
    """Map cookie name → full Set-Cookie header (for attribute checks)."""
    return {
        header.partition("=")[0].strip(): header
        for header in response.headers.get_list("set-cookie")
    }


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
