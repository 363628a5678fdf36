"""Process-wide cache of derived per-user keys.

Keys are deterministic PBKDF2 outputs, so eviction only costs a later
re-derivation. What the cache must guarantee is single-flight: when many
threads ask for the same uncached user at once, exactly one of them runs
the (deliberately slow) derivation and the rest wait for its result.
Different users never wait on each other.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable
from concurrent.futures import Future

logger = logging.getLogger(__name__)


class KeyCache:
    """Memoized ``user_id -> key`` store with per-key single-flight derivation.

    Reads of cached keys take no lock. The lock is held only to claim or
    publish an in-flight derivation, never while ``compute_fn`` runs.
    """

    __slots__ = ("_keys", "_inflight", "_lock")

    def __init__(self) -> None:
        self._keys: dict[Hashable, bytes] = {}
        self._inflight: dict[Hashable, Future[bytes]] = {}
        self._lock = threading.Lock()

    def get_or_derive(self, user_id: Hashable, compute_fn: Callable[[], bytes]) -> bytes:
        """Return the cached key for ``user_id``, deriving it once if absent.

        Concurrent callers for the same missing id share one execution of
        ``compute_fn``. If it raises, every waiter gets the exception and
        nothing is cached. ``user_id`` may be any hashable id; the
        encryption service passes ``(secret_fingerprint, user_id)``.
        """
        cached = self._keys.get(user_id)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._keys.get(user_id)
            if cached is not None:
                return cached
            future = self._inflight.get(user_id)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[user_id] = future

        if not owner:
            return future.result()

        try:
            key = bytes(compute_fn())
        except BaseException as exc:
            with self._lock:
                if self._inflight.get(user_id) is future:
                    del self._inflight[user_id]
            future.set_exception(exc)
            raise

        with self._lock:
            # invalidate()/clear() during derivation detach the future: the
            # result still answers its waiters but is never cached.
            if self._inflight.get(user_id) is future:
                del self._inflight[user_id]
                self._keys[user_id] = key
        logger.debug("Derived encryption key for %s", user_id)
        future.set_result(key)
        return key

    def invalidate(self, user_id: Hashable) -> bool:
        """Drop one key, and any derivation of it in flight.

        Returns True if a key was cached.
        """
        with self._lock:
            removed = self._keys.pop(user_id, None) is not None
            self._inflight.pop(user_id, None)
        if removed:
            logger.info("Invalidated cached key for %s", user_id)
        return removed

    def clear(self) -> int:
        """Drop every cached key (e.g. after secret rotation). Returns the count."""
        with self._lock:
            count = len(self._keys)
            self._keys.clear()
            self._inflight.clear()
        if count:
            logger.info("Cleared %d cached encryption keys", count)
        return count

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._keys

    def __len__(self) -> int:
        return len(self._keys)
