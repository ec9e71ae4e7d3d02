"""Redis-backed single-flight guard for scheduled scans."""

from contextlib import contextmanager

import redis
from redis.exceptions import LockError

from vaultswitch.common.errors import ScanAlreadyRunningError
from vaultswitch.common.logging import logger


@contextmanager
def single_flight(rdb: redis.Redis, name: str, ttl_seconds: int):
    """Hold a non-blocking redis lock for the duration of the block.

    The lock expires after `ttl_seconds` so a crashed holder cannot wedge the
    schedule forever.
    """

    lock = rdb.lock(name, timeout=ttl_seconds, blocking=False)
    if not lock.acquire(blocking=False):
        raise ScanAlreadyRunningError(f"lock {name} is held by another scan")
    logger.info("single_flight acquired lock=%s ttl_s=%s", name, ttl_seconds)
    try:
        yield lock
    finally:
        try:
            lock.release()
        except LockError as exc:
            # Lock outlived its TTL and may now belong to someone else.
            logger.warning("single_flight release failed lock=%s error=%s", name, exc)
