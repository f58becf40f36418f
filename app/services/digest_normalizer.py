import logging
import math
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

RESPONSE_KEY = "QueryInvoiceDigestResponse"
_PAGE_FIELDS = ("currentPage", "availablePage")
_AMOUNT_FIELDS = ("invoiceNetAmount", "invoiceVatAmountHUF")
_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)
_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def to_number(value: Any, field: str = "") -> int | float:
    """Convert a textual counter or amount to a number.

    Only plain decimal literals are numeric: integral text becomes ``int``,
    other numeric text ``float`` and blank text ``0``. Anything else,
    including ``inf``/``nan`` spellings and out-of-range exponents, becomes
    ``nan`` and is logged rather than raised, so callers must treat ``nan``
    as an absent value.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if _INTEGER.fullmatch(text):
            return int(text)
        if _DECIMAL.fullmatch(text):
            number = float(text)
            if math.isfinite(number):
                return number
    logger.warning(
        "Unparseable numeric field", extra={"field": field, "value": repr(value)}
    )
    return math.nan


def as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return [value]


def _normalize_digest(digest: Mapping[str, Any]) -> dict[str, Any]:
    normalized = dict(digest)
    for field in _AMOUNT_FIELDS:
        normalized[field] = to_number(digest.get(field), field)
    return normalized


def normalize_digest_response(response_data: Mapping[str, Any]) -> dict[str, Any]:
    """Turn a raw ``/queryInvoiceDigest`` reply into a stable result.

    Without an ``invoiceDigestResult`` (e.g. no matches) the response object
    is returned as-is. Otherwise the paging counters and digest amounts are
    made numeric, ``invoiceDigest`` is always a list, and the outbound
    ``requestXml`` is attached for auditing.
    """
    response = response_data[RESPONSE_KEY]
    digest_result = response.get("invoiceDigestResult")
    if not digest_result:
        return response

    result = dict(digest_result)
    for field in _PAGE_FIELDS:
        result[field] = to_number(digest_result.get(field), field)

    digests = digest_result.get("invoiceDigest")
    if digests:
        result["invoiceDigest"] = [_normalize_digest(d) for d in as_list(digests)]

    return {**result, "requestXml": response_data.get("requestXml")}
