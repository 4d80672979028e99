from basil.core.security import RateLimitMiddleware


async def downstream(scope, receive, send):
    pass


def make_limiter(max_requests=2, window_seconds=60):
    return RateLimitMiddleware(downstream, max_requests=max_requests, window_seconds=window_seconds)


class TestRateLimit:
    def test_limit_per_ip(self):
        limiter = make_limiter()
        t0 = limiter.last_sweep

        assert limiter.allow("10.0.0.1", t0 + 1)
        assert limiter.allow("10.0.0.1", t0 + 2)
        assert not limiter.allow("10.0.0.1", t0 + 3)
        assert limiter.allow("10.0.0.2", t0 + 3)

    def test_window_slides(self):
        limiter = make_limiter(max_requests=1, window_seconds=10)
        t0 = limiter.last_sweep

        assert limiter.allow("10.0.0.1", t0 + 1)
        assert not limiter.allow("10.0.0.1", t0 + 5)
        assert limiter.allow("10.0.0.1", t0 + 12)

    def test_idle_ips_are_forgotten(self):
        limiter = make_limiter()
        t0 = limiter.last_sweep

        limiter.allow("10.0.0.1", t0 + 1)
        limiter.allow("10.0.0.2", t0 + 2)
        assert set(limiter.requests) == {"10.0.0.1", "10.0.0.2"}

        limiter.allow("10.0.0.3", t0 + 100)

        assert set(limiter.requests) == {"10.0.0.3"}

    def test_active_ips_survive_sweep(self):
        limiter = make_limiter()
        t0 = limiter.last_sweep

        limiter.allow("10.0.0.1", t0 + 1)
        limiter.allow("10.0.0.2", t0 + 50)
        limiter.allow("10.0.0.3", t0 + 70)

        assert set(limiter.requests) == {"10.0.0.2", "10.0.0.3"}
