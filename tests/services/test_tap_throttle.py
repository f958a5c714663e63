"""Tests for the per-process tap throttle."""

from meowchi.services.tap_throttle import TapThrottle


class TestTapThrottle:
    def test_first_tap_passes(self):
        assert TapThrottle(cooldown_ms=220).should_throttle(1, now_ms=0) is False

    def test_within_cooldown(self):
        throttle = TapThrottle(cooldown_ms=220)
        throttle.mark(1, now_ms=1000)

        assert throttle.should_throttle(1, now_ms=1219) is True
        assert throttle.should_throttle(1, now_ms=1220) is False

    def test_users_are_independent(self):
        throttle = TapThrottle(cooldown_ms=220)
        throttle.mark(1, now_ms=1000)

        assert throttle.should_throttle(2, now_ms=1001) is False

    def test_zero_disables(self):
        throttle = TapThrottle(cooldown_ms=0)
        throttle.mark(1, now_ms=1000)

        assert throttle.should_throttle(1, now_ms=1000) is False
        assert len(throttle) == 0

    def test_evicts_oldest(self):
        throttle = TapThrottle(cooldown_ms=220, max_entries=2)
        throttle.mark(1, now_ms=0)
        throttle.mark(2, now_ms=1)
        throttle.mark(1, now_ms=2)  # refreshes user 1
        throttle.mark(3, now_ms=3)

        assert len(throttle) == 2
        # User 2 was least recently marked
        assert throttle.should_throttle(2, now_ms=4) is False
        assert throttle.should_throttle(1, now_ms=4) is True
