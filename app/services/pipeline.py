from collections.abc import Mapping
from typing import Any

from app.services.digest_normalizer import normalize_digest_response
from app.services.envelope import SoftwareData, TechnicalUser, build_base_request
from app.services.nav_transport import NavTransport
from app.services.query_composer import compose_invoice_query

REQUEST_TYPE = "QueryInvoiceDigestRequest"
QUERY_DIGEST_PATH = "/queryInvoiceDigest"


class DigestPipeline:
    def __init__(
        self,
        transport: NavTransport,
        technical_user: TechnicalUser,
        software_data: SoftwareData,
    ) -> None:
        self._transport = transport
        self._technical_user = technical_user
        self._software_data = software_data

    def build_request(
        self, page: int, invoice_direction: str, query_params: Mapping[str, Any]
    ) -> dict[str, dict[str, Any]]:
        request = build_base_request(
            REQUEST_TYPE, self._technical_user, self._software_data
        )
        request[REQUEST_TYPE].update(
            page=page,
            invoiceDirection=invoice_direction,
            invoiceQueryParams=compose_invoice_query(query_params),
        )
        return request

    async def run(
        self, page: int, invoice_direction: str, query_params: Mapping[str, Any]
    ) -> dict[str, Any]:
        request = self.build_request(page, invoice_direction, query_params)
        response_data = await self._transport.send(
            request=request, path=QUERY_DIGEST_PATH
        )
        return normalize_digest_response(response_data)
