# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import pytest

_TMP = tempfile.mkdtemp(prefix="tenantdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["AUTH_MODE"] = "dev"
os.environ["APP_ENV"] = "local"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("CRON_SECRET", None)
os.environ.pop("CRON_SECRET_SCHEDULER", None)

from fastapi.testclient import TestClient  # noqa: E402

from app.db import Base, SessionLocal, engine  # noqa: E402
from app import models  # noqa: E402,F401
from app.models import Apartment, AppUser, Building, Client, ClientMembership, Tenant  # noqa: E402

Base.metadata.create_all(bind=engine)


@dataclass
class World:
    client_id: int
    client_slug: str
    manager_email: str
    building_id: int
    apartment_ids: list[int]
    tenant_ids: list[int]
    tenant_user_ids: list[int]
    tenant_emails: list[str]


def _suffix() -> str:
    return uuid.uuid4().hex[:8]


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def api() -> TestClient:
    from app.main import create_app

    return TestClient(create_app())


def dev_headers(client_slug: str, email: str, role: str = "client") -> dict[str, str]:
    return {"X-Client-Slug": client_slug, "X-User-Email": email, "X-User-Role": role}


@pytest.fixture
def headers() -> Callable[..., dict[str, str]]:
    return dev_headers


@pytest.fixture
def make_world() -> Callable[..., World]:
    """Client with one building, N apartments and one tenant login per apartment."""

    def _make(*, tenants: int = 2, capacity: int = 10, client_email: Optional[str] = None) -> World:
        s = SessionLocal()
        try:
            tag = _suffix()
            client = Client(slug=f"c-{tag}", name=f"Client {tag}", email=client_email)
            s.add(client)
            s.flush()

            manager = AppUser(email=f"manager-{tag}@t.local", display_name="manager")
            s.add(manager)
            s.flush()
            s.add(ClientMembership(client_id=client.id, user_id=manager.id, role="client"))

            building = Building(
                client_id=client.id,
                street_address=f"{tag} Main St",
                city="Belgrade",
                number_of_apartments=capacity,
                stories_high=3,
            )
            s.add(building)
            s.flush()

            apt_ids: list[int] = []
            tenant_ids: list[int] = []
            user_ids: list[int] = []
            emails: list[str] = []
            for i in range(tenants):
                apt = Apartment(building_id=building.id, apartment_number=str(i + 1), floor=i)
                s.add(apt)
                s.flush()
                email = f"tenant{i}-{tag}@t.local"
                user = AppUser(email=email, display_name=f"tenant{i}")
                s.add(user)
                s.flush()
                s.add(ClientMembership(client_id=client.id, user_id=user.id, role="tenant"))
                t = Tenant(
                    apartment_id=apt.id,
                    user_id=user.id,
                    first_name=f"T{i}",
                    last_name="Tenant",
                    email=email,
                    phone_number="+381641234567",
                    is_primary=True,
                )
                s.add(t)
                s.flush()
                apt_ids.append(int(apt.id))
                tenant_ids.append(int(t.id))
                user_ids.append(int(user.id))
                emails.append(email)

            s.commit()
            return World(
                client_id=int(client.id),
                client_slug=client.slug,
                manager_email=manager.email,
                building_id=int(building.id),
                apartment_ids=apt_ids,
                tenant_ids=tenant_ids,
                tenant_user_ids=user_ids,
                tenant_emails=emails,
            )
        finally:
            s.close()

    return _make


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 12, 0, 0)
