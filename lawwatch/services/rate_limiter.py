"""
Rate Limiter

Sliding-window request gate for outbound calls to the upstream registry.
Instances are created by the caller and injected into the client, so several
independently configured limiters can coexist. State is in-process only and
resets on restart.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from lawwatch.core.logging_config import get_logger

DEFAULT_KEY = "default"

# Extra delay added on top of the computed wait before re-checking
SAFETY_MARGIN_MS = 100


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_ms: int

    def __post_init__(self):
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if self.window_ms <= 0:
            raise ValueError("window_ms must be positive")


class RateLimiter:
    """
    At most ``max_requests`` admissions per key in any ``window_ms`` window.

    ``clock`` returns milliseconds and ``sleep`` takes seconds; both are
    injectable for tests.
    """

    def __init__(
        self,
        config: RateLimitConfig,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        self.config = config
        self._clock = clock or (lambda: time.monotonic() * 1000)
        self._sleep = sleep or asyncio.sleep
        self._requests: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    def check_limit(self, key: str = DEFAULT_KEY) -> bool:
        """Admit and record one request for ``key`` if the window has room."""
        with self._lock:
            now = self._clock()
            timestamps = self._purge(key, now)

            if len(timestamps) >= self.config.max_requests:
                return False

            timestamps.append(now)
            return True

    async def wait_for_slot(self, key: str = DEFAULT_KEY) -> None:
        """Suspend until ``key`` is admitted."""
        while not self.check_limit(key):
            delay_ms = self._delay_until_free(key) + SAFETY_MARGIN_MS
            self.logger.debug(
                f"Rate limit reached, waiting {delay_ms:.0f}ms",
                extra={"rate_limit_key": key, "delay_ms": delay_ms}
            )
            await self._sleep(delay_ms / 1000)

    def get_remaining_requests(self, key: str = DEFAULT_KEY) -> int:
        with self._lock:
            timestamps = self._purge(key, self._clock())
            return max(0, self.config.max_requests - len(timestamps))

    def get_reset_time(self, key: str = DEFAULT_KEY) -> float:
        """Clock time (ms) at which the oldest in-window request expires, 0 when idle."""
        with self._lock:
            timestamps = self._purge(key, self._clock())
            if not timestamps:
                return 0
            return timestamps[0] + self.config.window_ms

    def reset(self, key: Optional[str] = None) -> None:
        """Forget recorded requests for ``key``, or for every key."""
        with self._lock:
            if key is None:
                self._requests.clear()
            else:
                self._requests.pop(key, None)

    def _purge(self, key: str, now: float) -> List[float]:
        window_start = now - self.config.window_ms
        timestamps = [t for t in self._requests.get(key, []) if t > window_start]
        self._requests[key] = timestamps
        return timestamps

    def _delay_until_free(self, key: str) -> float:
        with self._lock:
            timestamps = self._requests.get(key, [])
            if not timestamps:
                return 0
            return max(0, timestamps[0] + self.config.window_ms - self._clock())
