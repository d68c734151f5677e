import random


class Backoff:
    """Exponential backoff with jitter for retrying scan requests."""

    def __init__(
        self,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_factor: float = 2.0,
        jitter_factor: float = 0.1,
    ):
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter_factor = jitter_factor
        self._current_delay = initial_delay
        self.attempts = 0

    def reset(self) -> None:
        """Reset delay after a successful request."""
        self._current_delay = self.initial_delay
        self.attempts = 0

    def next_delay(self) -> float:
        """Delay before the next attempt; grows after every call."""
        delay = self._current_delay
        self.attempts += 1
        self._current_delay = min(self._current_delay * self.backoff_factor, self.max_delay)
        # Add jitter: +/- jitter_factor of the delay
        jitter = delay * self.jitter_factor * (2 * random.random() - 1)
        return delay + jitter
