"""Tests for pairing rate limiter."""

from datetime import timedelta

from pairgate.pairing.rate_limiter import RateLimiter


class TestRateLimiter:
    """Tests for rate limiter."""

    def test_allows_first_request(self, clock):
        """First request is allowed."""
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)
        assert limiter.check_and_consume("10.0.0.1") is True

    def test_third_allowed_fourth_denied(self, clock):
        """With max 3: allowed, allowed, allowed, denied."""
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)

        results = [limiter.check_and_consume("10.0.0.1") for _ in range(4)]

        assert results == [True, True, True, False]

    def test_denied_attempts_are_not_counted(self, clock):
        """Rejected attempts do not push the counter past the limit."""
        limiter = RateLimiter(max_attempts=2, window_seconds=60, clock=clock)
        for _ in range(5):
            limiter.check_and_consume("10.0.0.1")

        assert limiter.windows["10.0.0.1"].attempts == 2

    def test_different_keys_independent(self, clock):
        """Different origins have independent limits."""
        limiter = RateLimiter(max_attempts=2, window_seconds=60, clock=clock)
        limiter.check_and_consume("10.0.0.1")
        limiter.check_and_consume("10.0.0.1")

        assert limiter.check_and_consume("10.0.0.1") is False
        assert limiter.check_and_consume("10.0.0.2") is True

    def test_window_reset(self, clock):
        """Attempts are allowed again once the window has passed."""
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)
        for _ in range(3):
            limiter.check_and_consume("10.0.0.1")
        assert limiter.check_and_consume("10.0.0.1") is False

        clock.advance(61)

        assert limiter.check_and_consume("10.0.0.1") is True
        assert limiter.windows["10.0.0.1"].attempts == 1

    def test_window_still_active_at_reset_instant(self, clock):
        """The window resets only after reset_at, not at it."""
        limiter = RateLimiter(max_attempts=1, window_seconds=60, clock=clock)
        limiter.check_and_consume("10.0.0.1")

        clock.advance(60)

        assert limiter.check_and_consume("10.0.0.1") is False

    def test_window_reset_at(self, clock):
        """A new window ends window_seconds from its first attempt."""
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)
        limiter.check_and_consume("10.0.0.1")

        assert limiter.windows["10.0.0.1"].reset_at == clock.now + timedelta(seconds=60)

    def test_check_does_not_purge(self, clock):
        """Stale windows are left for the sweep."""
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)
        limiter.check_and_consume("10.0.0.1")
        clock.advance(120)

        limiter.check_and_consume("10.0.0.2")

        assert "10.0.0.1" in limiter.windows


class TestPurgeExpired:
    """Tests for purge_expired."""

    def test_removes_stale_windows_only(self, clock):
        limiter = RateLimiter(max_attempts=3, window_seconds=60, clock=clock)
        limiter.check_and_consume("10.0.0.1")
        clock.advance(30)
        limiter.check_and_consume("10.0.0.2")
        clock.advance(31)

        removed = limiter.purge_expired()

        assert removed == 1
        assert "10.0.0.1" not in limiter.windows
        assert "10.0.0.2" in limiter.windows
        assert len(limiter) == 1

    def test_nothing_to_purge(self, clock):
        limiter = RateLimiter(clock=clock)
        assert limiter.purge_expired() == 0
