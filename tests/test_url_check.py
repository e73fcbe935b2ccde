import functools

import httpx
import pytest

from campaign_quiz.utils import url_check
from campaign_quiz.utils.url_check import check_url


def _serve(monkeypatch: pytest.MonkeyPatch, handler) -> list:
    seen = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        return handler(request)

    factory = functools.partial(httpx.Client, transport=httpx.MockTransport(_record))
    monkeypatch.setattr(url_check.httpx, 'Client', factory)
    return seen


@pytest.mark.parametrize('url', ['', 'ftp://files.example.com/a.pdf', 'docs.example.com/a.pdf', 'https://'])
def test_rejects_non_http_urls(url: str) -> None:
    is_valid, error = check_url(url)
    assert is_valid is False
    assert error


def test_success_status(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _serve(monkeypatch, lambda request: httpx.Response(200))

    assert check_url('https://docs.example.com/a.pdf') == (True, None)
    assert seen == ['HEAD']


def test_falls_back_to_get_when_head_is_refused(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _serve(
        monkeypatch,
        lambda request: httpx.Response(405 if request.method == 'HEAD' else 200),
    )

    assert check_url('https://docs.example.com/a.pdf') == (True, None)
    assert seen == ['HEAD', 'GET']


def test_error_status(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(monkeypatch, lambda request: httpx.Response(404))

    assert check_url('https://docs.example.com/missing.pdf') == (False, 'HTTP 404')


def test_connection_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    _serve(monkeypatch, _refuse)

    is_valid, error = check_url('https://down.example.com/a.pdf')
    assert is_valid is False
    assert 'connection refused' in error
