from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Generic, TypeVar

from src.models.errors import DuplicateCodeError
from src.models.records import Expiring, utcnow
from src.utils.codes import CodeGenerator, canonical_code

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Expiring)


class ExpiringStore(Generic[T]):
    """Thread-safe mapping from code to record, honouring each record's expiry.

    A record is expired once ``now >= expires_at``. Expired records are never
    returned; the first read that notices one removes it and passes it to
    ``on_evict`` so external resources can be released. ``on_evict`` always
    runs outside the lock.
    """

    def __init__(
        self,
        name: str,
        clock: Callable[[], datetime] = utcnow,
        on_evict: Callable[[T], None] | None = None,
    ) -> None:
        self.name = name
        self._clock = clock
        self._on_evict = on_evict
        self._items: dict[str, T] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def live_count(self, now: datetime | None = None) -> int:
        now_ = now or self._clock()
        with self._lock:
            return sum(1 for r in self._items.values() if r.expires_at > now_)

    def codes(self) -> list[str]:
        with self._lock:
            return list(self._items)

    def insert(self, record: T) -> None:
        with self._lock:
            evicted = self._insert_locked(record, self._clock())
        self._evict(evicted)

    def publish(self, build: Callable[[str], T], codes: CodeGenerator) -> T:
        """Allocate a free code and insert ``build(code)`` in one critical section.

        Present entries count as taken even when expired, so a code is only
        handed out again after its previous record has been removed and its
        resources released.
        """

        with self._lock:
            code = codes.next(lambda c: c in self._items)
            record = build(code)
            if canonical_code(record.code) != code:
                raise ValueError("built record does not carry the allocated code")
            self._insert_locked(record, self._clock())
        logger.debug("%s: published %s", self.name, code)
        return record

    def get(self, code: str) -> T | None:
        key = canonical_code(code)
        with self._lock:
            record = self._items.get(key)
            if record is None:
                return None
            if self._clock() < record.expires_at:
                return record
            del self._items[key]
        logger.debug("%s: %s expired on read", self.name, key)
        self._evict(record)
        return None

    def contains(self, code: str) -> bool:
        return self.get(code) is not None

    def pop(self, code: str) -> T | None:
        with self._lock:
            return self._items.pop(canonical_code(code), None)

    def delete(self, code: str) -> bool:
        return self.pop(code) is not None

    def discard(self, record: T) -> bool:
        """Remove ``record`` only if it is still the entry stored under its code."""

        key = canonical_code(record.code)
        with self._lock:
            if self._items.get(key) is not record:
                return False
            del self._items[key]
            return True

    def sweep_expired(self, now: datetime | None = None) -> list[T]:
        now_ = now or self._clock()
        with self._lock:
            expired = [k for k, r in self._items.items() if r.expires_at <= now_]
            return [self._items.pop(k) for k in expired]

    def clear(self) -> list[T]:
        with self._lock:
            removed = list(self._items.values())
            self._items.clear()
            return removed

    def _insert_locked(self, record: T, now: datetime) -> T | None:
        key = canonical_code(record.code)
        existing = self._items.get(key)
        if existing is not None and now < existing.expires_at:
            raise DuplicateCodeError(key)
        self._items[key] = record
        return existing

    def _evict(self, record: T | None) -> None:
        if record is None or self._on_evict is None:
            return
        try:
            self._on_evict(record)
        except Exception:
            logger.exception("%s: eviction hook failed for %s", self.name, record.code)
