"""
Shared fixtures.

The environment is configured before ``storefront`` is imported so the
cached settings and the engine pick up the test database.
"""

import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["ENV_MODE"] = "development"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["ADMIN_EMAILS"] = '"Root@PideLocal.es"; ops@pidelocal.es'
os.environ["BUSINESS_TIMEZONE"] = "Europe/Madrid"

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from storefront.database import async_session_maker  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models import Business, BusinessMember, MemberRole, Product, Promotion  # noqa: E402

JWT_SECRET = "test-secret"
SUPER_ADMIN_EMAIL = "root@pidelocal.es"

ALL_DAY = {str(day): [{"start": "00:00", "end": "24:00"}] for day in range(7)}


def make_token(user_id: str, email: str = "", secret: str = JWT_SECRET, expires_in: int = 3600) -> str:
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(user_id: str, email: str = "") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


class Seeder:
    """Writes fixtures through the app's own event loop."""

    def __init__(self, client: TestClient):
        self.client = client

    def _run(self, func, *args):
        return self.client.portal.call(func, *args)

    def business(self, **fields) -> Business:
        fields.setdefault("slug", f"biz-{uuid.uuid4().hex[:8]}")
        fields.setdefault("name", "Pizzeria Test")
        fields.setdefault("ordering_hours", ALL_DAY)

        async def create():
            async with async_session_maker() as session:
                business = Business(**fields)
                session.add(business)
                await session.commit()
                return business

        return self._run(create)

    def member(self, business_id: str, user_id: str, email: str = "", role: str = "staff") -> None:
        async def create():
            async with async_session_maker() as session:
                session.add(BusinessMember(
                    business_id=business_id,
                    user_id=user_id,
                    email=email or None,
                    role=MemberRole(role),
                ))
                await session.commit()

        self._run(create)

    def product(self, business_id: str, name: str = "Margherita", price_cents: int = 1000, **fields) -> int:
        async def create():
            async with async_session_maker() as session:
                product = Product(business_id=business_id, name=name, price_cents=price_cents, **fields)
                session.add(product)
                await session.commit()
                return product.id

        return self._run(create)

    def promotion(self, business_id: str, **fields) -> str:
        fields.setdefault("name", "Promo")

        async def create():
            async with async_session_maker() as session:
                promotion = Promotion(business_id=business_id, **fields)
                session.add(promotion)
                await session.commit()
                return promotion.id

        return self._run(create)


@pytest.fixture
def seed(client) -> Seeder:
    return Seeder(client)
