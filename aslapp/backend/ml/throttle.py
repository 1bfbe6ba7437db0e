import math
import time
from typing import Optional

DEFAULT_INTERVAL_S = 0.5


def should_process(now: float, last_processed: float, min_interval: float) -> bool:
    # a clock that goes backwards simply yields a negative gap -> rejected
    return (now - last_processed) >= min_interval


class FrameThrottle:
    """
    Admission control for incoming frames.
    Single writer: callers must serialize offer() themselves.
    """

    def __init__(self, min_interval: float = DEFAULT_INTERVAL_S):
        self.min_interval = min_interval
        self.last_processed = -math.inf

        self._accepted = 0
        self._rejected = 0

    def reset(self):
        self.last_processed = -math.inf
        self._accepted = 0
        self._rejected = 0

    def offer(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.monotonic()

        if not should_process(now, self.last_processed, self.min_interval):
            self._rejected += 1
            return False

        self.last_processed = now
        self._accepted += 1
        return True

    @property
    def stats(self) -> dict:
        return {"accepted": self._accepted, "rejected": self._rejected}
