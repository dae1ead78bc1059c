"""Delay policy between consecutive page visits."""

import logging
import random
import time

logger = logging.getLogger(__name__)


class Throttle:
    """Sleep a fixed or jittered interval between requests.

    With min_seconds == max_seconds the delay is fixed.
    """

    def __init__(self, min_seconds: float = 0, max_seconds: float | None = None, sleep=time.sleep):
        if max_seconds is None:
            max_seconds = min_seconds
        if min_seconds < 0 or max_seconds < min_seconds:
            raise ValueError(f"Invalid throttle range: {min_seconds}..{max_seconds}")
        self.min_seconds = min_seconds
        self.max_seconds = max_seconds
        self._sleep = sleep

    @classmethod
    def disabled(cls) -> "Throttle":
        return cls(0, 0)

    def next_delay(self) -> float:
        return random.uniform(self.min_seconds, self.max_seconds)

    def wait(self) -> float:
        """Block for the next delay; returns the seconds slept."""
        delay = self.next_delay()
        if delay > 0:
            logger.debug("Throttling for %.2fs", delay)
            self._sleep(delay)
        return delay
