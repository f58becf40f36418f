import logging
import time
import uuid
from typing import Any, Literal

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from app.api.v1.schemas import InvoiceDigestQuery, InvoiceDigestResult
from app.core.security import verify_api_key
from app.services.nav_transport import NavApiError

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_key)])


def _outcome(result: dict[str, Any]) -> Literal["digest", "empty"]:
    return "digest" if "availablePage" in result else "empty"


def _render(result: dict[str, Any]) -> tuple[dict[str, Any], int]:
    if _outcome(result) == "empty":
        return result, 0
    digest_result = InvoiceDigestResult.model_validate(result)
    return digest_result.model_dump(mode="json"), len(digest_result.invoiceDigest)


@router.post("/invoice-digest")
async def query_invoice_digest(
    query: InvoiceDigestQuery, request: Request
) -> JSONResponse:
    request_id = str(uuid.uuid4())
    start = time.monotonic()
    status_code = 500
    outcome: str | None = None
    result_count: int | None = None

    try:
        pipeline = request.app.state.pipeline
        try:
            result = await pipeline.run(
                page=query.page,
                invoice_direction=query.invoiceDirection,
                query_params=query.queryParams.model_dump(exclude_none=True),
            )
        except NavApiError as e:
            status_code = 502
            raise HTTPException(status_code=502, detail=str(e)) from e
        except httpx.TimeoutException as e:
            status_code = 504
            raise HTTPException(
                status_code=504, detail="NAV service timed out"
            ) from e
        except httpx.HTTPError as e:
            status_code = 502
            raise HTTPException(
                status_code=502, detail="NAV service unreachable"
            ) from e

        outcome = _outcome(result)
        body, result_count = _render(result)
        status_code = 200
        return JSONResponse(
            body,
            status_code=200,
            headers={"X-Request-Id": request_id},
        )
    finally:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "invoice digest query complete",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": str(request.url.path),
                "status_code": status_code,
                "outcome": outcome,
                "result_count": result_count,
                "duration_ms": duration_ms,
            },
        )
