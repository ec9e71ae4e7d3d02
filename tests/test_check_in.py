"""Owner check-ins reset the clock and clear any trigger."""

from datetime import timedelta

import pytest

from vaultswitch.common.clock import as_utc
from vaultswitch.common.config import CommonSettings
from vaultswitch.common.errors import ConflictError, NotFoundError
from vaultswitch.services.switch.schemas import CheckInRequest
from vaultswitch.services.switch.service import SwitchService


def test_check_in_resets_clock(service, make_switch, clock):
    """The response reports a full period until the next trigger."""

    switch = make_switch(days_ago=100)

    resp = service.check_in(switch.id)

    assert resp.last_check_in == clock.now()
    assert resp.days_until_trigger == 180
    assert resp.trigger_date == clock.now() + timedelta(days=180)
    assert as_utc(service.store.get_by_id(switch.id).last_check_in) == clock.now()


def test_check_in_is_idempotent(service, make_switch, clock, channel):
    """Repeated check-ins on a healthy switch are harmless and keep warnings away."""

    switch = make_switch(days_ago=10)

    service.check_in(switch.id)
    service.check_in(switch.id)
    clock.advance(days=30)
    report = service.run_scan()

    assert report.warned == 0
    assert report.final_warned == 0
    assert report.results[0].action == "none"
    assert channel.sent == []


def test_check_in_after_warning_stops_warnings(service, make_switch, clock):
    """After a reset below 75% the next scan sends nothing."""

    switch = make_switch(days_ago=170)
    assert service.run_scan().final_warned == 1

    service.check_in(switch.id)
    clock.advance(days=1)
    report = service.run_scan()

    assert report.warned == 0
    assert report.final_warned == 0


def test_check_in_clears_trigger_and_token(service, make_switch):
    """Checking in on a triggered switch re-arms it and withdraws the token."""

    switch = make_switch(days_ago=181)
    service.run_scan()
    assert service.store.get_by_id(switch.id).is_triggered is True

    service.check_in(switch.id)

    stored = service.store.get_by_id(switch.id)
    assert stored.is_triggered is False
    assert stored.access_token is None
    assert stored.token_expires_at is None
    assert stored.is_active is True


def test_check_in_can_keep_token_when_configured(session_factory, channel, clock, make_switch):
    """With token clearing disabled, only the trigger flag is reset."""

    config = CommonSettings(app_url="https://vault.example.test", clear_token_on_check_in=False)
    service = SwitchService(session_factory, channel=channel, clock=clock, config=config)
    switch = make_switch(days_ago=181)
    service.run_scan()

    service.check_in(switch.id)

    stored = service.store.get_by_id(switch.id)
    assert stored.is_triggered is False
    assert stored.access_token is not None


def test_check_in_unknown_switch(service):
    """Unknown ids surface directly to the caller."""

    with pytest.raises(NotFoundError):
        service.check_in("does-not-exist")


def test_check_in_writes_audit_event(service, make_switch):
    """Every check-in leaves an audit row carrying its origin."""

    switch = make_switch(days_ago=3)

    service.check_in(
        switch.id,
        CheckInRequest(ip_address="203.0.113.7", user_agent="pytest", metadata={"source": "mobile"}),
    )
    service.check_in(switch.id)

    history = service.store.check_in_history(switch.id)
    assert len(history) == 2
    assert {event.ip_address for event in history} == {"203.0.113.7", None}
    assert any(event.origin == {"source": "mobile"} for event in history)


def test_check_in_retries_on_conflict(service, make_switch, monkeypatch):
    """A lost race is retried against a fresh read."""

    switch = make_switch(days_ago=5)
    real_update = service.store.conditional_update
    calls = {"n": 0}

    def flaky_update(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise ConflictError("simulated race")
        return real_update(*args, **kwargs)

    monkeypatch.setattr(service.store, "conditional_update", flaky_update)

    service.check_in(switch.id)

    assert calls["n"] == 2
    assert len(service.store.check_in_history(switch.id)) == 1


def test_check_in_gives_up_after_retries(service, make_switch, monkeypatch):
    """Persistent conflicts surface once the retry budget is spent."""

    switch = make_switch(days_ago=5)

    def always_conflict(*args, **kwargs):
        raise ConflictError("simulated race")

    monkeypatch.setattr(service.store, "conditional_update", always_conflict)

    with pytest.raises(ConflictError):
        service.check_in(switch.id)
