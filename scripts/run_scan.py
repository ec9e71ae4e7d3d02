"""Run one inactivity scan in-process and print the report JSON.

Intended for the scheduler (cron, k8s CronJob). The redis lock keeps two
overlapping invocations from evaluating the same switches twice.
"""

import argparse
import json
import sys

import redis

from vaultswitch.common.config import settings
from vaultswitch.common.db import SessionLocal
from vaultswitch.common.errors import ScanAlreadyRunningError
from vaultswitch.common.locking import single_flight
from vaultswitch.common.logging import configure_logging, logger
from vaultswitch.common.startup import log_startup_config
from vaultswitch.services.switch.scanner import SCAN_LOCK_NAME
from vaultswitch.services.switch.service import SwitchService


def main() -> None:
    """CLI entrypoint for scheduled scans."""

    parser = argparse.ArgumentParser(description="Evaluate every active switch once.")
    parser.add_argument("--redis-url", default=settings.redis_url)
    parser.add_argument("--lock-ttl-seconds", type=int, default=settings.scan_lock_ttl_seconds)
    args = parser.parse_args()

    configure_logging()
    service = SwitchService(SessionLocal)
    log_startup_config(
        settings.service_name,
        ["SERVICE_NAME", "POSTGRES_DSN", "REDIS_URL", "MAIL_RELAY_URL"],
        delivery_channel=type(service.channel).__name__,
        lock_ttl_seconds=args.lock_ttl_seconds,
    )
    rdb = redis.Redis.from_url(args.redis_url, decode_responses=True)
    try:
        with single_flight(rdb, SCAN_LOCK_NAME, args.lock_ttl_seconds):
            report = service.run_scan()
    except ScanAlreadyRunningError as exc:
        logger.warning("scan skipped: %s", exc)
        print(f"Scan skipped: {exc}", file=sys.stderr)
        raise SystemExit(3) from exc

    print(json.dumps(report.model_dump(mode="json"), indent=2))
    raise SystemExit(1 if report.errors else 0)


if __name__ == "__main__":
    main()
