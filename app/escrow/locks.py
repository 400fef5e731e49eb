"""
Distributed locking for escrow settlement.

Guest confirmation, the auto-confirmation sweep and dispute creation can
all act on the same escrow at once. Each of them runs its
read-check-capture-write sequence inside the escrow's settlement lock, so
only one process can be between "the row is ESCROWED" and "the row was
written" for a given escrow. The conditional update in the repository still
guards the write itself.

Usage:
    from escrow.locks import settlement_lock

    try:
        with settlement_lock(escrow.id):
            ...
    except LockAcquisitionError:
        # Someone else is settling this escrow right now
        ...
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING

from django.conf import settings

from django_redis import get_redis_connection

from escrow.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Features:
        - TTL prevents deadlocks from crashed processes
        - Token-based ownership prevents release by another process
        - Blocking and non-blocking acquisition modes
        - Context manager support

    Args:
        key: Lock identifier (will be prefixed with "lock:")
        ttl: Lock TTL in seconds (auto-releases after this time)
        blocking: If True, acquire() waits until the lock is available
        timeout: Maximum wait time in seconds (only if blocking=True)

    Note:
        The TTL must be longer than the slowest gateway call made while
        holding the lock.
    """

    # Atomic check-and-delete
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Raises:
            LockAcquisitionError: If the lock couldn't be acquired
        """
        token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            end_time = time.monotonic() + self.timeout
            while time.monotonic() < end_time:
                if self._try_acquire(redis, token):
                    return True
                time.sleep(0.05)

            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not self._try_acquire(redis, token):
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        return True

    def _try_acquire(self, redis: Redis, token: str) -> bool:
        if redis.set(self.key, token, nx=True, ex=self.ttl):
            self._token = token
            return True
        return False

    def release(self) -> bool:
        """
        Release the lock if we hold it.

        Safe to call multiple times.
        """
        if self._token is None:
            return False

        redis = self._get_redis()
        result = redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


# Upper bound of the Stripe SDK's sleep between two network retries
STRIPE_RETRY_DELAY_SECONDS = 5

# Database work done under the lock around the capture
SETTLEMENT_WRITE_SECONDS = 10


def settlement_lock_ttl() -> int:
    """
    Seconds the settlement lock lives.

    A capture holds the lock for up to one request timeout per attempt plus
    the SDK's backoff between retries. If the lock expired mid-capture a
    second settler could start; the capture idempotency key would keep the
    charge single, but both would race on the escrow write. The configured
    ESCROW_SETTLEMENT_LOCK_TTL is only a floor.
    """
    retries = settings.STRIPE_MAX_NETWORK_RETRIES
    capture_worst_case = (
        settings.STRIPE_API_TIMEOUT_SECONDS * (retries + 1)
        + STRIPE_RETRY_DELAY_SECONDS * retries
    )
    return max(
        settings.ESCROW_SETTLEMENT_LOCK_TTL,
        capture_worst_case + SETTLEMENT_WRITE_SECONDS,
    )


def settlement_lock(escrow_id) -> DistributedLock:
    """
    Non-blocking lock serialising every state-changing action on one escrow.

    Non-blocking because a waiting caller would only find the escrow
    already settled once it got the lock.
    """
    return DistributedLock(
        f"escrow:settle:{escrow_id}",
        ttl=settlement_lock_ttl(),
        blocking=False,
    )


__all__ = ["DistributedLock", "settlement_lock", "settlement_lock_ttl"]
