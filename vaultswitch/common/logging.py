"""Structured JSON logging carrying trace, scan and switch correlation ids."""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from vaultswitch.common.config import settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
scan_id_ctx: ContextVar[str] = ContextVar("scan_id", default="")
switch_id_ctx: ContextVar[str] = ContextVar("switch_id", default="")

_CONTEXT_VARS = {
    "trace_id": trace_id_ctx,
    "scan_id": scan_id_ctx,
    "switch_id": switch_id_ctx,
}

_FIELDS = "%(asctime)s %(levelname)s %(service_name)s %(trace_id)s %(scan_id)s %(switch_id)s %(message)s"


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        for name, var in _CONTEXT_VARS.items():
            setattr(record, name, var.get())
        return True


@contextmanager
def log_context(**fields: str):
    """Bind correlation ids for the duration of the block.

    Only `trace_id`, `scan_id` and `switch_id` are accepted; previous values are
    restored on exit, so nested scans and requests do not leak ids.
    """

    tokens = []
    try:
        for name, value in fields.items():
            tokens.append((_CONTEXT_VARS[name], _CONTEXT_VARS[name].set(value)))
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def configure_logging() -> None:
    """Configure root logger once per process.

    `LOG_JSON=false` switches to a plain single-line format for local runs.
    """

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    if settings.log_json:
        handler.setFormatter(JsonFormatter(_FIELDS))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(scan_id)s/%(switch_id)s] %(message)s")
        )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)


logger = logging.getLogger("vaultswitch")
