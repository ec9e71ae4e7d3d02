"""Shared fixtures: in-memory database, frozen clock and a recording channel."""

import os

os.environ.setdefault("POSTGRES_DSN", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("APP_URL", "https://vault.example.test")

from datetime import datetime, timedelta, timezone

import pytest
from redis.exceptions import LockError

from vaultswitch.common.config import CommonSettings
from vaultswitch.common.db import Base, build_engine, build_session_factory
from vaultswitch.common.errors import DeliveryError
from vaultswitch.services.switch.models import Owner, Switch
from vaultswitch.services.switch.service import SwitchService


START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when a test says so."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingChannel:
    """Delivery channel that keeps every message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, object]] = []
        self.fail = False

    def send(self, recipient, message) -> str:
        if self.fail:
            raise DeliveryError("relay unavailable")
        self.sent.append((recipient, message))
        return f"msg-{len(self.sent)}"

    def subjects_for(self, recipient: str) -> list[str]:
        return [message.subject for to, message in self.sent if to == recipient]


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def config():
    return CommonSettings(app_url="https://vault.example.test", clear_token_on_check_in=True)


@pytest.fixture
def service(session_factory, channel, clock, config):
    return SwitchService(session_factory, channel=channel, clock=clock, config=config, service_name="switch-test")


@pytest.fixture
def make_switch(session_factory, clock):
    """Insert an owner and an armed switch whose last check-in was `days_ago` days back."""

    counter = {"n": 0}

    def _make(
        days_ago: float | None = 0,
        period: int = 180,
        owner_email: str | None = "owner@example.test",
        nominee_email: str = "nominee@example.test",
        nominee_name: str | None = "Robin",
        active: bool = True,
        personal_message: str | None = None,
    ) -> Switch:
        counter["n"] += 1
        owner_ref = f"owner-{counter['n']}"
        last_check_in = None if days_ago is None else clock.now() - timedelta(days=days_ago)
        with session_factory() as db:
            if owner_email is not None:
                db.add(Owner(owner_id=owner_ref, email=owner_email))
            switch = Switch(
                owner_ref=owner_ref,
                nominee_email=nominee_email,
                nominee_name=nominee_name,
                personal_message=personal_message,
                inactivity_period_days=period,
                last_check_in=last_check_in,
                is_active=active,
                is_triggered=False,
            )
            db.add(switch)
            db.commit()
            db.refresh(switch)
            return switch

    return _make


class FakeLock:
    def __init__(self, owner: "FakeRedis", name: str) -> None:
        self.owner = owner
        self.name = name

    def acquire(self, blocking: bool = True) -> bool:
        if self.owner.locks.get(self.name):
            return False
        self.owner.locks[self.name] = True
        return True

    def release(self) -> None:
        if self.owner.fail_release:
            raise LockError("lock expired")
        self.owner.locks.pop(self.name, None)


class FakeRedis:
    """Just enough of `redis.Redis.lock` for the single-flight guard."""

    def __init__(self) -> None:
        self.locks: dict[str, bool] = {}
        self.fail_release = False

    def lock(self, name, timeout=None, blocking=True):
        return FakeLock(self, name)


@pytest.fixture
def fake_redis():
    return FakeRedis()
