import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx
from lxml import etree

from app.services.xml_codec import from_xml, to_xml

logger = logging.getLogger(__name__)

_RETRYABLE_CODES = frozenset(
    {
        "OPERATION_FAILED",
        "MAINTENANCE",
        "TOO_MANY_REQUESTS",
        "TECHNICAL_ERROR",
        "TIMEOUT",
    }
)
_HEADERS = {"Content-Type": "application/xml", "Accept": "application/xml"}


class NavApiError(Exception):
    def __init__(
        self, code: str, message: str = "", status_code: int | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(f"NAV API error [{code}]: {message}")

    @property
    def is_retryable(self) -> bool:
        if self.code in _RETRYABLE_CODES:
            return True
        return self.status_code is not None and (
            self.status_code == 429 or self.status_code >= 500
        )


def _result_of(response_data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not response_data:
        return {}
    body = next(iter(response_data.values()))
    if not isinstance(body, Mapping):
        return {}
    result = body.get("result")
    return result if isinstance(result, Mapping) else {}


def _check_response(response: httpx.Response) -> dict[str, Any]:
    try:
        response_data: dict[str, Any] | None = from_xml(response.content)
    except etree.XMLSyntaxError:
        response_data = None
    result = _result_of(response_data)

    if response.is_error:
        raise NavApiError(
            str(result.get("errorCode") or f"HTTP_{response.status_code}"),
            str(result.get("message") or response.text[:500]),
            status_code=response.status_code,
        )
    if response_data is None:
        raise NavApiError("INVALID_RESPONSE", "Reply is not well-formed XML")
    func_code = result.get("funcCode")
    if func_code != "OK":
        raise NavApiError(
            str(result.get("errorCode") or func_code or "UNKNOWN"),
            str(result.get("message") or ""),
        )
    return response_data


class NavTransport:
    """Sends envelope dicts to the NAV REST endpoints as XML.

    The reply comes back as a dict keyed by its root element, plus the
    serialized outbound document under ``requestXml``. Retryable NAV codes,
    HTTP 429/5xx and connection failures are retried with exponential
    backoff; the last error is raised.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        retry_attempts: int = 3,
        retry_delay_s: float = 2.0,
    ) -> None:
        self._client = client
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay_s = retry_delay_s

    async def send(
        self, request: Mapping[str, Mapping[str, Any]], path: str
    ) -> dict[str, Any]:
        request_xml = to_xml(request)
        last_error: Exception | None = None
        for attempt in range(1, self._retry_attempts + 1):
            logger.debug(
                "Sending NAV request", extra={"path": path, "attempt": attempt}
            )
            try:
                response = await self._client.post(
                    path, content=request_xml, headers=_HEADERS
                )
                response_data = _check_response(response)
                return {**response_data, "requestXml": request_xml.decode("utf-8")}
            except NavApiError as exc:
                if not exc.is_retryable:
                    raise
                last_error = exc
            except httpx.TransportError as exc:
                last_error = exc
            if attempt < self._retry_attempts:
                logger.warning(
                    "NAV request failed, retrying",
                    extra={"path": path, "attempt": attempt, "error": str(last_error)},
                )
                await asyncio.sleep(self._retry_delay_s * 2 ** (attempt - 1))
        raise last_error  # type: ignore[misc]
