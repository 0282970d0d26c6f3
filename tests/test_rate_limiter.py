from capacita.routes import rate_limited_response
from capacita.services import rate_limiter as rate_limiter_module
from capacita.services.rate_limiter import FixedWindowRateLimiter
from capacita.main import app as flask_app


def test_fixed_window_rate_limiter_blocks_after_threshold(monkeypatch):
    current_time = {"value": 1000.0}

    def fake_time():
        return current_time["value"]

    monkeypatch.setattr(rate_limiter_module.time, "time", fake_time)
    monkeypatch.setattr(rate_limiter_module.time, "monotonic", fake_time)

    limiter = FixedWindowRateLimiter(max_attempts=2, window_seconds=60)
    assert limiter.register_attempt("user")[0] is True
    assert limiter.register_attempt("user")[0] is True

    allowed, retry_after = limiter.register_attempt("user")
    assert allowed is False
    assert retry_after is not None and retry_after > 0

    current_time["value"] += 61
    allowed, retry_after = limiter.register_attempt("user")
    assert allowed is True
    assert retry_after is None


def test_keys_are_counted_independently():
    limiter = FixedWindowRateLimiter(max_attempts=1, window_seconds=60)
    assert limiter.register_attempt("a")[0] is True
    assert limiter.register_attempt("b")[0] is True
    assert limiter.register_attempt("a")[0] is False


def test_rate_limited_response_sets_retry_after(monkeypatch):
    monkeypatch.setitem(
        rate_limiter_module._limiters, "ai", FixedWindowRateLimiter(1, 30)
    )
    with flask_app.test_request_context("/ia/reescrever", method="POST"):
        assert rate_limited_response("ai", "rewrite", identifier="u1") is None
        response = rate_limited_response("ai", "rewrite", identifier="u1")

    assert response is not None
    assert response.status_code == 429
    assert 1 <= int(response.headers["Retry-After"]) <= 30
