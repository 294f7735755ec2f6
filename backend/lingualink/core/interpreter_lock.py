"""
Per-interpreter scheduling lock.

Confirm and reschedule re-read an interpreter's committed sessions and run the
conflict check inside this lock, so two concurrent bookings for the same
interpreter cannot both pass the check against a stale view. Bookings for
different interpreters never contend.

With ``interpreter_lock_redis_url`` configured the mutex is a Redis key set
with NX/EX; otherwise (or when Redis is unreachable) an in-process lock per
interpreter is used.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Any, Dict, Iterator, List, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import Settings, settings as default_settings
from .exceptions import ResourceLocked
from .ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

_REDIS_CLIENTS: Dict[str, Redis] = {}
_REDIS_CLIENTS_LOCK = threading.Lock()

# key -> [lock, holders and waiters]; entries are dropped once unused
_LOCAL_LOCKS: Dict[str, List[Any]] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()

_POLL_INTERVAL_S = 0.05


def _lock_key(interpreter_id: str, namespace: str) -> str:
    return f"{namespace}:lock:interpreter:{interpreter_id}:schedule"


def _get_sync_redis(url: Optional[str]) -> Optional[Redis]:
    if not url:
        return None
    client = _REDIS_CLIENTS.get(url)
    if client is not None:
        return client
    with _REDIS_CLIENTS_LOCK:
        client = _REDIS_CLIENTS.get(url)
        if client is not None:
            return client
        try:
            client = Redis.from_url(url, encoding="utf-8", decode_responses=True)
            client.ping()
        except Exception as exc:
            logger.warning("interpreter_lock_redis_unavailable: %s", exc)
            return None
        _REDIS_CLIENTS[url] = client
        return client


@contextmanager
def _local_lock(key: str, wait_s: float) -> Iterator[bool]:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    lock = entry[0]
    acquired = False
    try:
        acquired = lock.acquire(timeout=wait_s)
        yield acquired
    finally:
        if acquired:
            lock.release()
        with _LOCAL_LOCKS_GUARD:
            entry[1] -= 1
            if entry[1] == 0:
                _LOCAL_LOCKS.pop(key, None)


def _acquire_redis(client: Redis, key: str, token: str, ttl_s: int, wait_s: float) -> bool:
    deadline = time.monotonic() + wait_s
    while True:
        if client.set(key, token, nx=True, ex=ttl_s):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(_POLL_INTERVAL_S)


def _release_redis(client: Redis, key: str, token: str) -> None:
    try:
        # Only release a lock we still own; an expired lock may belong to someone else now.
        if client.get(key) == token:
            client.delete(key)
            prometheus_metrics.record_interpreter_lock("release", "success")
        else:
            prometheus_metrics.record_interpreter_lock("release", "not_owner")
    except Exception as exc:
        prometheus_metrics.record_interpreter_lock("release", "error")
        logger.warning(
            "interpreter_lock_release_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def interpreter_lock(
    interpreter_id: str,
    *,
    config: Optional[Settings] = None,
    redis_client: Optional[Redis] = None,
) -> Iterator[None]:
    """
    Hold the scheduling lock for one interpreter.

    Raises:
        ResourceLocked: if the lock is not acquired within the configured wait
    """
    cfg = config or default_settings
    client = redis_client or _get_sync_redis(cfg.interpreter_lock_redis_url)

    if client is not None:
        key = _lock_key(interpreter_id, cfg.lock_namespace)
        token = generate_ulid()
        try:
            acquired = _acquire_redis(
                client, key, token, cfg.interpreter_lock_ttl_seconds, cfg.interpreter_lock_wait_seconds
            )
        except Exception as exc:
            prometheus_metrics.record_interpreter_lock("acquire", "error")
            logger.warning(
                "interpreter_lock_redis_acquire_failed",
                extra={
                    "interpreter_id": interpreter_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
        else:
            if not acquired:
                prometheus_metrics.record_interpreter_lock("acquire", "blocked")
                raise ResourceLocked(f"interpreter:{interpreter_id}")
            prometheus_metrics.record_interpreter_lock("acquire", "success")
            try:
                yield
            finally:
                _release_redis(client, key, token)
            return

    with _local_lock(f"interpreter:{interpreter_id}", cfg.interpreter_lock_wait_seconds) as acquired:
        if not acquired:
            prometheus_metrics.record_interpreter_lock("acquire", "blocked")
            logger.warning("interpreter_lock_blocked", extra={"interpreter_id": interpreter_id})
            raise ResourceLocked(f"interpreter:{interpreter_id}")
        prometheus_metrics.record_interpreter_lock("acquire", "local")
        yield


@contextmanager
def session_rating_lock(session_id: str, *, config: Optional[Settings] = None) -> Iterator[None]:
    """Serialize rating submissions for a single session (in-process)."""
    cfg = config or default_settings
    with _local_lock(f"rating:{session_id}", cfg.interpreter_lock_wait_seconds) as acquired:
        if not acquired:
            raise ResourceLocked(f"session:{session_id}")
        yield
