"""
Unit Tests for RateLimiter

These tests verify the sliding-window budget:
- Exactly `limit_per_minute` calls are admitted per endpoint
- The next call raises RateLimitExceeded with a descriptive message
- Capacity returns once the oldest call leaves the 60s window
- Endpoints have independent budgets

Run with:
    pytest tests/unit/test_rate_limiter.py -v
"""

import pytest

from core.exceptions import MarketDataError, RateLimitExceeded
from core.rate_limiter import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 500.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(limit_per_minute=3, clock=clock)


class TestBudget:
    """Tests for admitting and rejecting calls"""

    def test_budget_is_admitted(self, limiter):
        for _ in range(3):
            limiter.check_and_record("markets")
        assert limiter.remaining("markets") == 0

    def test_call_over_budget_raises(self, limiter):
        for _ in range(3):
            limiter.check_and_record("markets")

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check_and_record("markets")

        assert exc_info.value.endpoint == "markets"
        assert exc_info.value.limit == 3
        assert str(exc_info.value) == "Rate limit exceeded for markets. Max 3 requests per minute."
        assert isinstance(exc_info.value, MarketDataError)

    def test_rejected_call_is_not_recorded(self, limiter, clock):
        for _ in range(3):
            limiter.check_and_record("markets")
        with pytest.raises(RateLimitExceeded):
            limiter.check_and_record("markets")

        clock.advance(60.0)
        assert limiter.remaining("markets") == 3

    def test_endpoints_have_independent_budgets(self, limiter):
        for _ in range(3):
            limiter.check_and_record("markets")
        limiter.check_and_record("trades")
        assert limiter.remaining("trades") == 2


class TestWindowSlide:
    """Tests for capacity returning as the window slides"""

    def test_capacity_returns_after_window(self, limiter, clock):
        for _ in range(3):
            limiter.check_and_record("orderbook")
        clock.advance(60.0)
        limiter.check_and_record("orderbook")

    def test_still_limited_just_inside_window(self, limiter, clock):
        for _ in range(3):
            limiter.check_and_record("orderbook")
        clock.advance(59.9)
        with pytest.raises(RateLimitExceeded):
            limiter.check_and_record("orderbook")

    def test_oldest_call_expires_first(self, limiter, clock):
        limiter.check_and_record("trades")
        clock.advance(30.0)
        limiter.check_and_record("trades")
        limiter.check_and_record("trades")
        clock.advance(30.0)
        assert limiter.remaining("trades") == 1


class TestReset:
    """Tests for reset"""

    def test_reset_single_endpoint(self, limiter):
        limiter.check_and_record("markets")
        limiter.check_and_record("trades")
        limiter.reset("markets")
        assert limiter.remaining("markets") == 3
        assert limiter.remaining("trades") == 2

    def test_reset_all(self, limiter):
        limiter.check_and_record("markets")
        limiter.check_and_record("trades")
        limiter.reset()
        assert limiter.remaining("markets") == 3
        assert limiter.remaining("trades") == 3

    def test_rejects_zero_limit(self):
        with pytest.raises(ValueError):
            RateLimiter(limit_per_minute=0)
