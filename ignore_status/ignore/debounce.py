"""
Restart-on-signal timer for coalescing bursts of invalidations
"""

import threading
from typing import Callable, Optional

from .constants import DEBOUNCE_SECONDS
from ignore_status.utils import get_logger

logger = get_logger(__name__)


class Debouncer:
    """
    Runs an action once after a quiet period.

    Each signal cancels the pending timer and starts a new one, so the action
    runs once, no sooner than `delay` seconds after the last signal.
    """

    def __init__(self, action: Callable[[], None],
                 delay: float = DEBOUNCE_SECONDS,
                 name: str = "debouncer"):
        """
        Initialize the debouncer

        Args:
            action: Called on a timer thread when the quiet period expires
            delay: Quiet period in seconds
            name: Name used for the timer thread and log messages
        """
        self.action = action
        self.delay = delay
        self.name = name
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()
        self._fire_count = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    @property
    def fire_count(self) -> int:
        """Number of times the action has run"""
        with self._lock:
            return self._fire_count

    def signal(self):
        """Reset the quiet period"""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            timer.name = f"{self.name}-{self._generation}"
            timer.daemon = True
            self._timer = timer
            timer.start()
        logger.trace(f"{self.name}: signalled, firing in {self.delay}s")

    # Callable so it can be handed to schedulers directly
    __call__ = signal

    def cancel(self) -> bool:
        """
        Drop the pending action, if any

        Returns:
            True if an action was pending
        """
        with self._lock:
            timer = self._timer
            self._timer = None
            # a timer that already started waiting for the lock sees a stale generation
            self._generation += 1
        if timer is None:
            return False
        timer.cancel()
        logger.debug(f"{self.name}: pending action cancelled")
        return True

    def flush(self) -> bool:
        """
        Run the pending action now instead of waiting

        Returns:
            True if an action was pending and ran
        """
        with self._lock:
            timer = self._timer
            if timer is None:
                return False
            generation = self._generation
        timer.cancel()
        return self._fire(generation)

    def _fire(self, generation: int) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._generation += 1
            self._timer = None
            self._fire_count += 1
        try:
            self.action()
        except Exception as e:
            logger.error(f"{self.name}: action failed: {e}", exc_info=True)
        return True
