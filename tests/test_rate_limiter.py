import asyncio
from typing import Optional

import pytest
from starlette.requests import Request

from campaign_quiz.utils import rate_limiter as rate_limiter_module
from campaign_quiz.utils.rate_limiter import RateLimited, RateLimiter


def _request(ip: str, token: Optional[str] = None) -> Request:
    headers = []
    if token:
        headers.append((b'authorization', f'Bearer {token}'.encode()))
    return Request({
        'type': 'http',
        'method': 'GET',
        'path': '/api/leaderboard',
        'headers': headers,
        'client': (ip, 50000),
    })


def _check(limiter: RateLimiter, request: Request) -> None:
    asyncio.run(limiter.check_rate_limit(request))


def test_rotating_bearer_tokens_share_the_ip_budget() -> None:
    limiter = RateLimiter(requests_per_minute=2, requests_per_hour=100)

    _check(limiter, _request('10.0.0.7', 'junk-token-1'))
    _check(limiter, _request('10.0.0.7', 'junk-token-2'))

    with pytest.raises(RateLimited) as excinfo:
        _check(limiter, _request('10.0.0.7', 'junk-token-3'))

    assert excinfo.value.status_code == 429
    assert excinfo.value.retry_after == 60
    assert list(limiter.history) == ['ip:10.0.0.7']


def test_other_clients_are_not_affected() -> None:
    limiter = RateLimiter(requests_per_minute=1, requests_per_hour=100)

    _check(limiter, _request('10.0.0.7'))
    _check(limiter, _request('10.0.0.8'))

    with pytest.raises(RateLimited):
        _check(limiter, _request('10.0.0.7'))


def test_idle_clients_are_forgotten(monkeypatch: pytest.MonkeyPatch) -> None:
    clock = [1000.0]
    monkeypatch.setattr(rate_limiter_module.time, 'monotonic', lambda: clock[0])
    limiter = RateLimiter(requests_per_minute=1, requests_per_hour=100)

    _check(limiter, _request('10.0.0.7'))
    assert 'ip:10.0.0.7' in limiter.history

    clock[0] += 3601
    _check(limiter, _request('10.0.0.8'))

    assert list(limiter.history) == ['ip:10.0.0.8']

    # The minute window has passed, so the first client may send again
    _check(limiter, _request('10.0.0.7'))
