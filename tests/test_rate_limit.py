from secret_angel.services.rate_limit import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_rate_limiter_blocks_after_max_calls():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=2, period_seconds=60, clock=clock)

    assert limiter.allow("user:1").allowed
    assert limiter.allow("user:1").allowed
    blocked = limiter.allow("user:1")
    assert not blocked.allowed
    assert blocked.retry_after == 60


def test_rate_limiter_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=1, period_seconds=60, clock=clock)

    assert limiter.allow("user:1").allowed
    clock.now = 59
    result = limiter.allow("user:1")
    assert not result.allowed
    assert result.retry_after == 1
    clock.now = 60
    assert limiter.allow("user:1").allowed


def test_rate_limiter_keys_are_independent():
    limiter = RateLimiter(max_calls=1, period_seconds=60, clock=FakeClock())
    assert limiter.allow("user:1").allowed
    assert limiter.allow("user:2").allowed
    assert not limiter.allow("user:1").allowed


def test_prune_drops_expired_windows():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=3, period_seconds=60, clock=clock)
    limiter.allow("user:1")
    clock.now = 30
    limiter.allow("user:2")
    clock.now = 70

    assert limiter.prune() == 1
    assert len(limiter) == 1
    clock.now = 100
    assert limiter.prune() == 1
    assert len(limiter) == 0
