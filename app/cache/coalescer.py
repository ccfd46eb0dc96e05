"""
Request coalescing for cache misses.

When several requests miss the same key at once, only the first one calls
the source of record; the rest wait for its result.
"""
import threading
import time
import logging
from typing import Dict, Optional, Callable, Any
from dataclasses import dataclass, field

logger = logging.getLogger("cache.coalescer")


@dataclass
class InFlightFetch:
    """Tracks an in-progress upstream fetch."""
    done: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    started_at: float = field(default_factory=time.monotonic)
    waiters: int = 0


class RequestCoalescer:
    """
    Shares one upstream call between concurrent misses on the same key.

    - The first caller for a key runs the fetch
    - Later callers block on the in-flight Event
    - Everyone gets the same result (or the same exception)

    With ``enabled=False`` every caller fetches on its own.

    Usage:
        coalescer = RequestCoalescer(timeout=30.0)
        rows = coalescer.get_or_fetch("bars:all@3", fetch_bars)
    """

    def __init__(self, timeout: float = 30.0, enabled: bool = True):
        """
        Args:
            timeout: Max seconds a waiter blocks on someone else's fetch
            enabled: Turn coalescing off entirely
        """
        self._in_flight: Dict[str, InFlightFetch] = {}
        self._lock = threading.Lock()
        self._timeout = timeout
        self._enabled = enabled
        self._coalesced_total = 0

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], Any]) -> Any:
        """
        Join an in-flight fetch for ``key`` or start one.

        Raises:
            TimeoutError: If waiting on another caller's fetch times out
            Exception: Whatever fetch_fn raised
            RuntimeError: A waiter whose initiator was interrupted (BaseException)
        """
        if not self._enabled:
            return fetch_fn()

        with self._lock:
            in_flight = self._in_flight.get(key)
            if in_flight is not None:
                in_flight.waiters += 1
                self._coalesced_total += 1
                is_initiator = False
                logger.debug(f"Coalescing fetch for {key} (waiters: {in_flight.waiters})")
            else:
                in_flight = InFlightFetch()
                self._in_flight[key] = in_flight
                is_initiator = True
                logger.debug(f"Initiating fetch for {key}")

        if is_initiator:
            try:
                in_flight.result = fetch_fn()
            except BaseException as e:
                in_flight.error = e
                logger.warning(f"Fetch failed for {key}: {e!r}")
            finally:
                with self._lock:
                    self._in_flight.pop(key, None)
                in_flight.done.set()

            if in_flight.error is not None:
                raise in_flight.error
            return in_flight.result

        if not in_flight.done.wait(timeout=self._timeout):
            logger.error(f"Timeout waiting for coalesced fetch: {key}")
            raise TimeoutError(f"Fetch for {key} timed out after {self._timeout}s")

        error = in_flight.error
        if error is not None:
            if not isinstance(error, Exception):
                # Interrupts and exits belong to the initiating thread
                raise RuntimeError(f"Fetch for {key} was aborted: {error!r}") from error
            raise error
        return in_flight.result

    @property
    def active_requests(self) -> int:
        """Number of fetches currently in flight."""
        with self._lock:
            return len(self._in_flight)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "enabled": self._enabled,
                "active_requests": len(self._in_flight),
                "active_keys": list(self._in_flight.keys()),
                "coalesced_total": self._coalesced_total,
            }
