"""Shared plumbing: startup config logging, engine bootstrap and log context."""

import pytest

from vaultswitch.common.db import build_engine
from vaultswitch.common.logging import log_context, scan_id_ctx, switch_id_ctx
from vaultswitch.common.startup import log_startup_config


def test_secrets_and_url_credentials_are_redacted(monkeypatch):
    """Keys are hidden outright; URLs keep their host but lose credentials."""

    monkeypatch.setenv("MAIL_RELAY_API_KEY", "super-secret")
    monkeypatch.setenv("POSTGRES_DSN", "postgresql+psycopg://vault:hunter2@db:5432/vault")
    monkeypatch.setenv("APP_URL", "https://vault.example.test")
    monkeypatch.delenv("MAIL_RELAY_URL", raising=False)

    config = log_startup_config(
        "switch",
        ["MAIL_RELAY_API_KEY", "POSTGRES_DSN", "APP_URL", "MAIL_RELAY_URL"],
        delivery_channel="LoggingChannel",
    )

    assert config["MAIL_RELAY_API_KEY"] == "<redacted>"
    assert config["POSTGRES_DSN"] == "postgresql+psycopg://<redacted>@db:5432/vault"
    assert "hunter2" not in str(config)
    assert config["APP_URL"] == "https://vault.example.test"
    assert config["MAIL_RELAY_URL"] == "<unset>"
    assert config["delivery_channel"] == "LoggingChannel"


def test_in_memory_sqlite_shares_one_database():
    """Two connections to an in-memory engine see the same tables."""

    engine = build_engine("sqlite+pysqlite:///:memory:")
    with engine.begin() as conn:
        conn.exec_driver_sql("CREATE TABLE probe (id INTEGER)")
    with engine.connect() as conn:
        assert conn.exec_driver_sql("SELECT count(*) FROM probe").scalar() == 0
    engine.dispose()


def test_log_context_restores_previous_ids():
    """Nested bindings unwind in order, even when the block raises."""

    with log_context(scan_id="scan-1"):
        with pytest.raises(RuntimeError):
            with log_context(scan_id="scan-2", switch_id="sw-1"):
                assert scan_id_ctx.get() == "scan-2"
                raise RuntimeError("boom")
        assert scan_id_ctx.get() == "scan-1"
        assert switch_id_ctx.get() == ""
    assert scan_id_ctx.get() == ""
