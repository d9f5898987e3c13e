"""
Time-boxed cache for forecast results.
"""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Sequence, Tuple

from spendcast.core.config import settings
from spendcast.ml.models import ForecastOptions, ForecastResult, Transaction

logger = logging.getLogger(__name__)


def build_cache_key(transactions: Sequence[Transaction], options: ForecastOptions) -> str:
    """
    Content hash of the transaction set and the resolved options.

    Transactions are serialized canonically and sorted, so the same set in
    a different order maps to the same key.
    """
    rows = sorted(
        json.dumps(tx.model_dump(mode="json"), sort_keys=True) for tx in transactions
    )
    payload = json.dumps(
        {"transactions": rows, "options": options.model_dump(mode="json")},
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ForecastCache:
    """
    Bounded TTL cache; the oldest entry is evicted when full.

    Lookup and insert are guarded by a lock so a single instance can be
    shared across request threads.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.CACHE_TTL_SECONDS
        self.max_entries = max_entries if max_entries is not None else settings.CACHE_MAX_ENTRIES
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, ForecastResult]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[ForecastResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            stored_at, result = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                logger.debug(f"Cache entry {key[:12]} expired")
                return None
            return result

    def put(self, key: str, result: ForecastResult) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            while self.max_entries > 0 and len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted[:12]}")
            if self.max_entries > 0:
                self._entries[key] = (self._clock(), result)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
