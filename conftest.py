import os

# Point the app's default engine at an in-memory database before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from core.deps import get_current_user, get_identity_claims
from db.session import build_engine, create_db_and_tables, get_session
from models.site import Site
from models.worker import Worker, WorkerRole
from services.site_registry import invalidate_site_cache

SF_CENTER = (37.7749, -122.4194)


class FrozenClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return now


def detached(row):
    """Session-free copy of a table row; reading each field reloads it if expired."""
    model = type(row)
    return model(**{name: getattr(row, name) for name in model.model_fields})


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'attendance.db'}")
    create_db_and_tables(test_engine)
    invalidate_site_cache()
    yield test_engine
    invalidate_site_cache()
    test_engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def clock():
    # Monday morning
    return FrozenClock(datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc))


def add_site(session, site_id="MAIN", lat=SF_CENTER[0], lng=SF_CENTER[1], radius=2000.0, **extra):
    site = Site(id=site_id, name=extra.pop("name", site_id.title()), latitude=lat,
                longitude=lng, radius_meters=radius, **extra)
    session.add(site)
    session.commit()
    session.refresh(site)
    invalidate_site_cache()
    return site


def add_worker(session, worker_id, name, role=WorkerRole.CAREWORKER):
    worker = Worker(id=worker_id, name=name, email=f"{worker_id}@example.com", role=role)
    session.add(worker)
    session.commit()
    session.refresh(worker)
    return worker


@pytest.fixture
def site(session):
    return add_site(session, name="Healthcare Center A")


@pytest.fixture
def worker(session):
    return add_worker(session, "w-1", "Wendy Care")


@pytest.fixture
def other_worker(session):
    return add_worker(session, "w-2", "Omar Night")


@pytest.fixture
def manager(session):
    return add_worker(session, "m-1", "Maya Lead", role=WorkerRole.MANAGER)


@pytest.fixture
def client(engine):
    from main import app

    def override_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Authenticate subsequent requests as the given worker."""
    from main import app

    def _login(worker: Worker):
        user = detached(worker)
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


@pytest.fixture
def identity(client):
    """Stand in for the identity provider with the given token claims."""
    from main import app

    def _identity(claims: dict):
        app.dependency_overrides[get_identity_claims] = lambda: claims
        return claims

    return _identity


@pytest.fixture
def make_site(session):
    def _make(site_id, lat=SF_CENTER[0], lng=SF_CENTER[1], radius=2000.0, **extra):
        return add_site(session, site_id, lat, lng, radius, **extra)

    return _make


@pytest.fixture
def make_worker(session):
    def _make(worker_id, name, role=WorkerRole.CAREWORKER):
        return add_worker(session, worker_id, name, role)

    return _make
