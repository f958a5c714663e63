"""Per-process tap throttle.

Sheds duplicate client retries before they queue on the user's row lock.
The map is local to one worker process and is never authoritative: a
throttled tap is answered from a read-only look at the store, and the row
lock alone guarantees the counter never overshoots its cap. With several
workers each has its own map, which only makes the throttle weaker.
"""

import time
from collections import OrderedDict


class TapThrottle:
    """Minimum spacing between counted taps of one user, in milliseconds."""

    def __init__(self, cooldown_ms: int = 220, max_entries: int = 50_000):
        self.cooldown_ms = cooldown_ms
        self.max_entries = max_entries
        self._last_tap: OrderedDict[int, float] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self.cooldown_ms > 0

    @staticmethod
    def now_ms() -> float:
        return time.monotonic() * 1000

    def should_throttle(self, user_id: int, now_ms: float | None = None) -> bool:
        """True if the previous counted tap is within the cooldown window."""
        if not self.enabled:
            return False
        last = self._last_tap.get(user_id)
        if last is None:
            return False
        now = self.now_ms() if now_ms is None else now_ms
        return now - last < self.cooldown_ms

    def mark(self, user_id: int, now_ms: float | None = None) -> None:
        """Remember a counted tap. Throttled taps must not call this."""
        if not self.enabled:
            return
        self._last_tap[user_id] = self.now_ms() if now_ms is None else now_ms
        self._last_tap.move_to_end(user_id)
        while len(self._last_tap) > self.max_entries:
            self._last_tap.popitem(last=False)

    def clear(self) -> None:
        self._last_tap.clear()

    def __len__(self) -> int:
        return len(self._last_tap)
