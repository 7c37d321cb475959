import json
import os
import tempfile
import time
from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio

# Settings are read once at import time; configure them before tourbook loads
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_DSN", "sqlite+aiosqlite:///" + os.path.join(tempfile.gettempdir(), "tourbook-app.db"))
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")
os.environ.setdefault("TRANSIENT_RETRY_BASE_DELAY", "0")

from httpx import AsyncClient, ASGITransport  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from tourbook.core import ValidationError, get_settings  # noqa: E402
from tourbook.infrastructure import get_session  # noqa: E402
from tourbook.infrastructure.payments import get_payment_gateway  # noqa: E402
from tourbook.main import app  # noqa: E402
from tourbook.models import Base, Booking, Tour, User  # noqa: E402

FUTURE_DAY = "2099-06-01"


class FakeGateway:
    """Accepts any delivery signed with the literal ``valid`` signature"""

    def parse_event(self, payload, signature):
        if signature != "valid":
            raise ValidationError("Invalid signature", field="Stripe-Signature")
        return json.loads(payload)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tourbook.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest_asyncio.fixture
async def make_tour(session_factory):
    async def _make(max_group_size=10, name="City walk", price=Decimal("25.00")):
        async with session_factory() as s:
            tour = Tour(name=name, max_group_size=max_group_size, price=price, currency="usd")
            s.add(tour)
            await s.commit()
            return tour.id

    return _make


@pytest_asyncio.fixture
async def make_user(session_factory):
    async def _make(email="traveller@example.com", role="user"):
        async with session_factory() as s:
            user = User(email=email, name="Traveller", role=role)
            s.add(user)
            await s.commit()
            return user.id

    return _make


@pytest_asyncio.fixture
async def add_booking(session_factory):
    """Insert a raw row in either stored shape"""

    async def _add(**values):
        async with session_factory() as s:
            row = Booking(**values)
            s.add(row)
            await s.commit()
            return row.id

    return _add


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_payment_gateway] = lambda: FakeGateway()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def make_token(sub, role="user", *, expires_in=900, **claims):
    """Sign a token the way the auth service does"""
    settings = get_settings()
    payload = {"sub": str(sub), "role": role, "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers(sub, role="user", **claims):
    return {"Authorization": f"Bearer {make_token(sub, role, **claims)}"}


@pytest.fixture
def admin_headers():
    return auth_headers(1, "admin")


def legacy_start(day: str, hour: int = 9) -> datetime:
    return datetime.fromisoformat(day).replace(hour=hour)
