import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _non_finite_to_none(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


class QueryParameters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dateFrom: str | None = None
    dateTo: str | None = None
    dateTimeFrom: str | None = None
    dateTimeTo: str | None = None
    taxNumber: str | None = None
    groupMemberTaxNumber: str | None = None
    name: str | None = None
    invoiceCategory: str | None = None
    paymentMethod: str | None = None
    invoiceAppearance: str | None = None
    source: str | None = None
    currency: str | None = None
    transactionId: str | None = None
    index: int | None = None
    invoiceOperation: str | None = None

    @model_validator(mode="after")
    def _require_date_range(self) -> "QueryParameters":
        has_date_time = bool(self.dateTimeFrom and self.dateTimeTo)
        has_date = bool(self.dateFrom and self.dateTo)
        if not (has_date_time or has_date):
            raise ValueError(
                "Either dateFrom/dateTo or dateTimeFrom/dateTimeTo is required"
            )
        return self


class InvoiceDigestQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    invoiceDirection: Literal["OUTBOUND", "INBOUND"]
    queryParams: QueryParameters


class InvoiceDigest(BaseModel):
    model_config = ConfigDict(extra="allow")

    invoiceNetAmount: float | None = None
    invoiceVatAmountHUF: float | None = None

    @field_validator("invoiceNetAmount", "invoiceVatAmountHUF", mode="before")
    @classmethod
    def _unparseable_amount_is_null(cls, value: Any) -> Any:
        return _non_finite_to_none(value)


class InvoiceDigestResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    currentPage: int | None
    availablePage: int | None
    invoiceDigest: list[InvoiceDigest] = []
    requestXml: str | None = None

    @field_validator("currentPage", "availablePage", mode="before")
    @classmethod
    def _unparseable_page_is_null(cls, value: Any) -> Any:
        return _non_finite_to_none(value)

    @field_validator("invoiceDigest", mode="before")
    @classmethod
    def _missing_digest_is_empty(cls, value: Any) -> Any:
        return value or []
