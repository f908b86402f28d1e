"""
Per-lead write lock (Redis).

Single-writer-per-lead across processes. Optional — the version check in the
repository already serializes writers; the lock just avoids burning retries
when the same lead is hammered from several workers.
"""
import logging
from contextlib import contextmanager

from redis.exceptions import LockError, RedisError

from leadflow import extensions
from leadflow.config import LEAD_LOCKS_ENABLED, LEAD_LOCK_TIMEOUT, LEAD_LOCK_WAIT
from leadflow.errors import TransactionConflict

logger = logging.getLogger('services.locks')

PREFIX = 'leadlock'


def lock_key(lead_id):
    return f'{PREFIX}:{lead_id}'


@contextmanager
def lead_lock(lead_id, enabled=None):
    """Hold the lead's lock for the duration of the block."""
    if enabled is None:
        enabled = LEAD_LOCKS_ENABLED
    if not enabled:
        yield
        return

    lock = extensions.redis_client.lock(
        lock_key(lead_id), timeout=LEAD_LOCK_TIMEOUT, blocking_timeout=LEAD_LOCK_WAIT,
    )
    try:
        acquired = lock.acquire()
    except RedisError:
        logger.error("Could not reach Redis to lock lead %s", lead_id, exc_info=True)
        raise
    if not acquired:
        logger.warning("Timed out waiting for lock on lead %s", lead_id)
        raise TransactionConflict(lead_id)

    try:
        yield
    finally:
        try:
            lock.release()
        except LockError:
            # Lock expired before release; the version check still guarded the write
            logger.warning("Lock on lead %s expired before release", lead_id)
