import pytest

from providers.rate_limiter import RateLimitWindow


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_minute_limit_blocks_then_resets():
    clock = FakeClock()
    window = RateLimitWindow(requests_per_minute=2, requests_per_day=100, clock=clock)

    assert window.acquire()
    assert window.acquire()
    assert not window.acquire()
    assert window.minute_count == 2

    clock.now += 60
    assert window.acquire()
    assert window.minute_count == 1
    assert window.day_count == 3


def test_rejected_acquire_consumes_nothing():
    window = RateLimitWindow(requests_per_minute=1, requests_per_day=100, clock=FakeClock())

    assert window.acquire()
    assert not window.acquire()
    assert not window.acquire()
    assert window.minute_count == 1
    assert window.day_count == 1


def test_day_counter_has_its_own_window():
    clock = FakeClock()
    window = RateLimitWindow(
        requests_per_minute=100, requests_per_day=3, day_window_seconds=3600, clock=clock
    )
    for _ in range(3):
        assert window.acquire()

    clock.now += 61
    assert not window.check()
    assert window.minute_count == 0

    clock.now += 3600
    assert window.check()
    assert window.day_count == 0


def test_check_and_increment_separately():
    window = RateLimitWindow(requests_per_minute=1, requests_per_day=10, clock=FakeClock())

    assert window.check()
    window.increment()
    assert not window.check()
    assert window.last_request_at == 1000.0


def test_zero_limit_always_refuses():
    window = RateLimitWindow(requests_per_minute=0, requests_per_day=0, clock=FakeClock())
    assert not window.acquire()
    assert window.snapshot()["minute_count"] == 0


def test_negative_limits_rejected():
    with pytest.raises(ValueError):
        RateLimitWindow(requests_per_minute=-1, requests_per_day=10)
