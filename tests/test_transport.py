import asyncio

import httpx
import pytest

from intel_sync.models.outcome import Failure, FailureKind, IntelligenceError, Success
from tests.conftest import Upstream, failing, make_transport


@pytest.mark.asyncio
async def test_success_returns_parsed_body(transport, upstream):
    outcome = await transport.call("/api/dashboard", {"holdings": [], "include": ["digest"]})

    assert isinstance(outcome, Success)
    assert outcome.payload["meta"]["holdings_count"] == 2
    assert outcome.upstream_stale is False

    request = upstream.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://intelligence.test/api/dashboard"
    assert Upstream.body(request) == {"holdings": [], "include": ["digest"]}
    assert request.headers["X-API-Key"] == "test-key"


@pytest.mark.asyncio
async def test_get_without_body_and_no_key_header_when_unset(upstream):
    transport = make_transport(upstream, api_key="")
    outcome = await transport.call("/api/health")

    assert isinstance(outcome, Success)
    assert upstream.requests[0].method == "GET"
    assert "X-API-Key" not in upstream.requests[0].headers


@pytest.mark.asyncio
async def test_upstream_stale_header_is_surfaced(transport, upstream):
    upstream.handler = lambda r: httpx.Response(200, json={"data": {}}, headers={"X-Data-Stale": "true"})
    outcome = await transport.call("/api/dashboard", {"holdings": []})
    assert outcome.upstream_stale is True


@pytest.mark.asyncio
async def test_4xx_with_error_envelope_is_client_error(transport, upstream):
    upstream.handler = failing(422, {"message": "holdings must not be empty", "code": "EMPTY_HOLDINGS"})
    outcome = await transport.call("/api/dashboard", {"holdings": []})

    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.CLIENT_ERROR
    assert outcome.message == "holdings must not be empty"
    assert outcome.code == "EMPTY_HOLDINGS"
    assert outcome.status == 422


@pytest.mark.asyncio
async def test_5xx_with_unparsable_body_gets_generic_message(transport, upstream):
    upstream.handler = failing(503)
    outcome = await transport.call("/api/dashboard", {"holdings": []})

    assert outcome.kind is FailureKind.SERVER_ERROR
    assert outcome.message == "Intelligence API returned 503"
    assert outcome.code is None


@pytest.mark.asyncio
async def test_redirect_is_unreachable_not_server_error(transport, upstream):
    upstream.handler = lambda r: httpx.Response(302, headers={"Location": "http://elsewhere.test/"})
    outcome = await transport.call("/api/dashboard", {"holdings": []})

    assert outcome.kind is FailureKind.UNREACHABLE
    assert outcome.status == 302
    assert outcome.message == "Intelligence API returned 302"


@pytest.mark.asyncio
async def test_connection_error_is_unreachable_with_cause(transport, upstream):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)
    upstream.handler = refuse

    outcome = await transport.call("/api/dashboard", {"holdings": []})
    assert outcome.kind is FailureKind.UNREACHABLE
    assert "connection refused" in outcome.message


@pytest.mark.asyncio
async def test_wall_clock_timeout_cancels_the_call(upstream):
    never = asyncio.Event()
    cancelled = []

    async def hang(request):
        try:
            await never.wait()
        except asyncio.CancelledError:
            cancelled.append(True)
            raise
        return httpx.Response(200, json={})
    upstream.handler = hang

    transport = make_transport(upstream, timeout=0.01)
    outcome = await transport.call("/api/dashboard", {"holdings": []})

    assert outcome.kind is FailureKind.TIMEOUT
    assert cancelled == [True]


@pytest.mark.asyncio
async def test_httpx_timeout_is_classified_as_timeout(transport, upstream):
    def slow(request):
        raise httpx.ReadTimeout("read timed out", request=request)
    upstream.handler = slow

    outcome = await transport.call("/api/signals/aggregate", {"holdings": [], "days": 7})
    assert outcome.kind is FailureKind.TIMEOUT


@pytest.mark.asyncio
async def test_unreadable_success_body_is_unreachable(transport, upstream):
    upstream.handler = lambda r: httpx.Response(200, text="<html>proxy error</html>")
    outcome = await transport.call("/api/dashboard", {"holdings": []})
    assert outcome.kind is FailureKind.UNREACHABLE


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open(transport):
    await transport.aclose()
    client = await transport.get_client()
    assert not client.is_closed


@pytest.mark.parametrize("kind, status, expected", [
    (FailureKind.TIMEOUT,      None, 504),
    (FailureKind.UNREACHABLE,  None, 503),
    (FailureKind.SERVER_ERROR, 500,  502),
    (FailureKind.CLIENT_ERROR, 422,  422),
])
def test_error_http_status_mapping(kind, status, expected):
    assert IntelligenceError(kind, "x", status=status).http_status == expected


def test_error_envelope_falls_back_to_kind_as_code():
    err = Failure(FailureKind.TIMEOUT, "Intelligence API request timed out").to_error()
    assert err.to_dict() == {"error": {"message": "Intelligence API request timed out", "code": "timeout"}}
