import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel

from app.core.errors import InsightsError

logger = logging.getLogger(__name__)

T = TypeVar("T")

HOUR_SECONDS = 3600


class FetchOutcome(Generic[T]):
    """Result of one scheduled fetch: either ``value`` or ``error`` is set."""

    def __init__(self, key: str, value: Optional[T] = None, error: Optional[InsightsError] = None):
        self.key = key
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None


class SchedulerStats(BaseModel):
    requests_last_hour: int
    max_requests_per_hour: int
    status: str


class FetchScheduler:
    """Runs upstream fetches one at a time with a fixed pause between them.

    A failure for one key is captured in its :class:`FetchOutcome` and the
    batch moves on; only errors from the :class:`InsightsError` family are
    captured, anything else propagates.
    """

    def __init__(
        self,
        delay_seconds: float = 2.0,
        max_requests_per_hour: int = 100,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay_seconds = delay_seconds
        self.max_requests_per_hour = max_requests_per_hour
        self._clock = clock
        self._sleep = sleep
        self._request_times: Deque[float] = deque()

    async def run(
        self, keys: Sequence[str], fetch: Callable[[str], Awaitable[T]]
    ) -> List[FetchOutcome[T]]:
        outcomes: List[FetchOutcome[T]] = []
        for index, key in enumerate(keys):
            if index > 0 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)
            self._record_request()
            try:
                outcomes.append(FetchOutcome(key, value=await fetch(key)))
            except InsightsError as exc:
                logger.warning("Fetch for %s failed: %s", key, exc)
                outcomes.append(FetchOutcome(key, error=exc))
        return outcomes

    def stats(self) -> SchedulerStats:
        self._prune()
        used = len(self._request_times)
        if used >= self.max_requests_per_hour:
            status = "exceeded"
        elif used >= self.max_requests_per_hour * 0.8:
            status = "near_limit"
        else:
            status = "ok"
        return SchedulerStats(
            requests_last_hour=used,
            max_requests_per_hour=self.max_requests_per_hour,
            status=status,
        )

    def _record_request(self) -> None:
        self._request_times.append(self._clock())
        self._prune()
        if len(self._request_times) > self.max_requests_per_hour:
            logger.warning(
                "%s upstream requests in the last hour (limit %s)",
                len(self._request_times),
                self.max_requests_per_hour,
            )

    def _prune(self) -> None:
        cutoff = self._clock() - HOUR_SECONDS
        while self._request_times and self._request_times[0] < cutoff:
            self._request_times.popleft()


def split_outcomes(outcomes: Sequence[FetchOutcome[T]]) -> Tuple[List[T], Dict[str, str]]:
    """Successful values in order, and error messages keyed by failed key."""
    values = [o.value for o in outcomes if o.ok]
    failures = {o.key: str(o.error) for o in outcomes if not o.ok}
    return values, failures
