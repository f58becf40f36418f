import logging
from collections.abc import Callable

import httpx
import pytest

from app.services.nav_transport import NavApiError, NavTransport

_BASE_URL = "https://nav.test/invoiceService/v3"
_REQUEST = {"QueryInvoiceDigestRequest": {"page": 1, "invoiceDirection": "OUTBOUND"}}

_OK_REPLY = (
    b'<QueryInvoiceDigestResponse xmlns="http://schemas.nav.gov.hu/OSA/3.0/api"'
    b' xmlns:common="http://schemas.nav.gov.hu/NTCA/1.0/common">'
    b"<common:result><common:funcCode>OK</common:funcCode></common:result>"
    b"<invoiceDigestResult><currentPage>1</currentPage>"
    b"<availablePage>1</availablePage></invoiceDigestResult>"
    b"</QueryInvoiceDigestResponse>"
)


def _error_reply(code: str) -> bytes:
    return (
        b"<GeneralErrorResponse><result><funcCode>ERROR</funcCode>"
        b"<errorCode>" + code.encode() + b"</errorCode>"
        b"<message>failure</message></result></GeneralErrorResponse>"
    )


def _transport(
    handler: Callable[[httpx.Request], httpx.Response], retry_attempts: int = 3
) -> NavTransport:
    client = httpx.AsyncClient(
        base_url=_BASE_URL, transport=httpx.MockTransport(handler)
    )
    return NavTransport(client, retry_attempts=retry_attempts, retry_delay_s=0)


async def test_send_posts_xml_and_returns_parsed_reply_with_request_xml() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=_OK_REPLY)

    result = await _transport(handler).send(
        request=_REQUEST, path="/queryInvoiceDigest"
    )

    assert seen[0].url == f"{_BASE_URL}/queryInvoiceDigest"
    assert seen[0].headers["content-type"] == "application/xml"
    assert b"<invoiceDirection>OUTBOUND</invoiceDirection>" in seen[0].content
    body = result["QueryInvoiceDigestResponse"]
    assert body["invoiceDigestResult"]["currentPage"] == "1"
    assert result["requestXml"] == seen[0].content.decode()


async def test_send_raises_nav_error_for_http_error_reply() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, content=_error_reply("INVALID_SECURITY_USER"))

    with pytest.raises(NavApiError) as exc_info:
        await _transport(handler).send(request=_REQUEST, path="/queryInvoiceDigest")

    assert exc_info.value.code == "INVALID_SECURITY_USER"
    assert exc_info.value.status_code == 400
    assert not exc_info.value.is_retryable


async def test_send_raises_nav_error_when_func_code_is_not_ok() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=_error_reply("INVALID_REQUEST"))

    with pytest.raises(NavApiError, match="INVALID_REQUEST"):
        await _transport(handler).send(request=_REQUEST, path="/queryInvoiceDigest")


async def test_send_raises_for_malformed_reply() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not xml")

    with pytest.raises(NavApiError) as exc_info:
        await _transport(handler).send(request=_REQUEST, path="/queryInvoiceDigest")

    assert exc_info.value.code == "INVALID_RESPONSE"


async def test_send_retries_retryable_errors_then_succeeds() -> None:
    replies = [
        httpx.Response(500, content=_error_reply("MAINTENANCE")),
        httpx.Response(200, content=_OK_REPLY),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return replies.pop(0)

    result = await _transport(handler).send(
        request=_REQUEST, path="/queryInvoiceDigest"
    )

    assert "QueryInvoiceDigestResponse" in result
    assert replies == []


async def test_send_raises_last_error_after_exhausting_retries() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, content=_error_reply("TECHNICAL_ERROR"))

    with pytest.raises(NavApiError, match="TECHNICAL_ERROR"):
        await _transport(handler, retry_attempts=2).send(
            request=_REQUEST, path="/queryInvoiceDigest"
        )

    assert calls == 2


async def test_send_retries_connection_errors() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(httpx.ConnectError):
        await _transport(handler, retry_attempts=3).send(
            request=_REQUEST, path="/queryInvoiceDigest"
        )

    assert calls == 3


def test_http_status_errors_are_retryable_for_throttling_and_server_faults() -> None:
    assert NavApiError("HTTP_429", status_code=429).is_retryable
    assert NavApiError("HTTP_503", status_code=503).is_retryable
    assert not NavApiError("HTTP_404", status_code=404).is_retryable


async def test_send_retries_throttled_reply_then_succeeds() -> None:
    replies = [
        httpx.Response(429, content=b"Too Many Requests"),
        httpx.Response(200, content=_OK_REPLY),
    ]
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return replies.pop(0)

    result = await _transport(handler).send(
        request=_REQUEST, path="/queryInvoiceDigest"
    )

    assert calls == 2
    assert "QueryInvoiceDigestResponse" in result


async def test_send_does_not_retry_client_errors() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(404, content=b"Not Found")

    with pytest.raises(NavApiError) as exc_info:
        await _transport(handler).send(request=_REQUEST, path="/queryInvoiceDigest")

    assert exc_info.value.code == "HTTP_404"
    assert calls == 1


async def test_send_logs_every_attempt(caplog: pytest.LogCaptureFixture) -> None:
    replies = [
        httpx.Response(503, content=b"Service Unavailable"),
        httpx.Response(200, content=_OK_REPLY),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return replies.pop(0)

    with caplog.at_level(logging.DEBUG, logger="app.services.nav_transport"):
        await _transport(handler).send(request=_REQUEST, path="/queryInvoiceDigest")

    records = [r for r in caplog.records if r.name == "app.services.nav_transport"]
    sent = [r for r in records if r.message == "Sending NAV request"]
    assert [r.attempt for r in sent] == [1, 2]
    retried = [r for r in records if r.message == "NAV request failed, retrying"]
    assert len(retried) == 1
    assert "HTTP_503" in retried[0].error
