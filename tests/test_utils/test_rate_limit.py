import pytest
from catalog.utils.rate_limit import SlidingWindowRateLimiter, get_rate_limiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return SlidingWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)


def test_allows_up_to_limit(limiter):
    for _ in range(3):
        assert limiter.is_allowed("user")
        limiter.record("user")
    assert not limiter.is_allowed("user")
    assert limiter.is_allowed("someone-else")


def test_window_slides(limiter, clock):
    """Test that requests leave the window one by one."""
    limiter.record("user")
    clock.now += 30
    limiter.record("user")
    limiter.record("user")
    assert limiter.retry_after("user") == pytest.approx(30)

    clock.now += 30
    assert limiter.is_allowed("user")
    assert limiter.retry_after("user") == 0.0


def test_reset(limiter):
    for _ in range(3):
        limiter.record("user")
    limiter.reset("user")
    assert limiter.is_allowed("user")


def test_registry_returns_same_limiter():
    first = get_rate_limiter("test-registry", 5, 10)
    assert get_rate_limiter("test-registry", 99, 99) is first
    assert first.max_requests == 5


def test_idle_keys_are_evicted(limiter, clock):
    """Test that keys whose window has passed don't pile up."""
    for i in range(1000):
        limiter.record(f"user-{i}")
    clock.now += 10_000

    assert limiter.is_allowed("someone")
    assert len(limiter._hits) == 0


def test_reads_do_not_create_keys(limiter):
    limiter.is_allowed("user")
    limiter.retry_after("user")
    assert "user" not in limiter._hits
