"""Votes across frames and decides when a scan is finished."""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from ..core.entities import CardScanResult, Expiry

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


class AggregatorState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    EMITTED = "emitted"


class FrequencyTable(Generic[K]):
    """Counts values and tracks the most frequent one.

    The leader only changes when another value gets a strictly higher
    count, so ties go to the value that reached the count first.
    """

    def __init__(self):
        self._counts: Dict[K, int] = {}
        self._leader: Optional[K] = None
        self._leader_count = 0

    def increment(self, value: K) -> int:
        count = self._counts.get(value, 0) + 1
        self._counts[value] = count
        if count > self._leader_count:
            self._leader = value
            self._leader_count = count
        return count

    @property
    def leader(self) -> Optional[K]:
        return self._leader

    @property
    def leader_count(self) -> int:
        return self._leader_count

    def count(self, value: K) -> int:
        return self._counts.get(value, 0)

    def __len__(self) -> int:
        return len(self._counts)

    def clear(self) -> None:
        self._counts.clear()
        self._leader = None
        self._leader_count = 0


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class ResultAggregator:
    """Accumulates per-frame predictions for one scan session.

    Once ``error_correction_duration_ms`` has passed since the first
    prediction, the leading number and expiry are frozen into a
    CardScanResult. After that every prediction is ignored until reset().
    """

    def __init__(self, error_correction_duration_ms: int = 2000,
                 clock: Callable[[], int] = _monotonic_ms):
        self.error_correction_duration_ms = error_correction_duration_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._numbers: FrequencyTable[str] = FrequencyTable()
        self._expiries: FrequencyTable[Expiry] = FrequencyTable()
        self._first_result_ms: Optional[int] = None
        self._result: Optional[CardScanResult] = None
        self._state = AggregatorState.IDLE

    @property
    def state(self) -> AggregatorState:
        return self._state

    @property
    def result(self) -> Optional[CardScanResult]:
        return self._result

    @property
    def first_result_ms(self) -> Optional[int]:
        return self._first_result_ms

    def reset(self) -> None:
        with self._lock:
            self._numbers.clear()
            self._expiries.clear()
            self._first_result_ms = None
            self._result = None
            self._state = AggregatorState.IDLE

    def elapsed_ms(self, now_ms: Optional[int] = None) -> int:
        if self._first_result_ms is None:
            return 0
        now = self._clock() if now_ms is None else now_ms
        return now - self._first_result_ms

    def add_prediction(self, number: Optional[str], expiry: Optional[Expiry],
                       now_ms: Optional[int] = None) -> Optional[CardScanResult]:
        """Record one frame's prediction.

        Returns the terminal result on the call that completes the session,
        None otherwise.
        """
        with self._lock:
            if self._state is AggregatorState.EMITTED:
                return None

            now = self._clock() if now_ms is None else now_ms

            if self._state is AggregatorState.IDLE:
                if number is None and expiry is None:
                    return None
                self._first_result_ms = now
                self._state = AggregatorState.ACCUMULATING
                logger.debug("First prediction received, aggregation window started")

            if number is not None:
                self._numbers.increment(number)
            if expiry is not None:
                self._expiries.increment(expiry)

            duration = now - self._first_result_ms
            if duration < self.error_correction_duration_ms:
                return None

            expiry_result = self._expiries.leader if duration >= self.error_correction_duration_ms / 2 else None
            self._result = CardScanResult(number=self._numbers.leader, expiry=expiry_result)
            self._state = AggregatorState.EMITTED
            logger.info(
                f"Scan complete after {duration} ms: {len(self._numbers)} distinct numbers "
                f"(leader seen {self._numbers.leader_count}x), expiry {'found' if expiry_result else 'missing'}"
            )
            return self._result

    def current_leaders(self, now_ms: Optional[int] = None) -> Tuple[Optional[str], Optional[Expiry]]:
        """Leading number, and leading expiry once half the window has passed."""
        with self._lock:
            if self._first_result_ms is None:
                return None, None
            duration = self.elapsed_ms(now_ms)
            expiry = self._expiries.leader if duration >= self.error_correction_duration_ms / 2 else None
            return self._numbers.leader, expiry
