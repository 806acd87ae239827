import logging
import time
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


def acquire_lock(lock_key: str, ttl_seconds: int | None = None) -> bool:
    # cache.add is atomic on LocMem and Redis: only the first caller wins.
    if ttl_seconds is None:
        ttl_seconds = getattr(settings, "SYNC_LOCK_TTL_SECONDS", 15 * 60)
    try:
        return bool(cache.add(lock_key, str(time.time()), timeout=ttl_seconds))
    except Exception:
        logger.exception("Lock failure for %s; continuing without lock.", lock_key)
        return True


def release_lock(lock_key: str) -> None:
    try:
        cache.delete(lock_key)
    except Exception:
        logger.exception("Failed to release lock %s", lock_key)


@contextmanager
def held_lock(lock_key: str, ttl_seconds: int | None = None):
    """Yields True when the lock was acquired; releases it only in that case."""
    acquired = acquire_lock(lock_key, ttl_seconds)
    try:
        yield acquired
    finally:
        if acquired:
            release_lock(lock_key)


def student_sync_lock_key(student_id: int) -> str:
    return f"sync_student:{student_id}"


def job_lock_key(job_name: str) -> str:
    return f"cron_job:{job_name}"
