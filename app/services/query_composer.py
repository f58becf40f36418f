from collections.abc import Mapping
from typing import Any

# Field order within each branch follows the protocol schema.
_DATE_RANGE_FIELDS = ("dateFrom", "dateTo")
_DATE_TIME_RANGE_FIELDS = ("dateTimeFrom", "dateTimeTo")
ADDITIONAL_FIELDS = (
    "taxNumber",
    "groupMemberTaxNumber",
    "name",
    "invoiceCategory",
    "paymentMethod",
    "invoiceAppearance",
    "source",
    "currency",
)
TRANSACTION_FIELDS = ("transactionId", "index", "invoiceOperation")

_BRANCHES = (
    "mandatoryQueryParams",
    "additionalQueryParams",
    "transactionQueryParams",
)


def _pick(query_params: Mapping[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {
        field: query_params[field]
        for field in fields
        if query_params.get(field) is not None
    }


def select_mandatory_params(query_params: Mapping[str, Any]) -> dict[str, Any]:
    """Pick the mandatory filter mode.

    A complete ``dateTimeFrom``/``dateTimeTo`` pair selects the system
    timestamp range (``insDate``) and wins over any issue-date range.
    Everything else falls back to ``invoiceIssueDate``, carrying whichever of
    ``dateFrom``/``dateTo`` were supplied.
    """
    if query_params.get("dateTimeFrom") and query_params.get("dateTimeTo"):
        return {"insDate": _pick(query_params, _DATE_TIME_RANGE_FIELDS)}
    return {"invoiceIssueDate": _pick(query_params, _DATE_RANGE_FIELDS)}


def _is_empty(branch: Mapping[str, Any]) -> bool:
    if not branch:
        return True
    return all(isinstance(value, Mapping) and not value for value in branch.values())


def prune_empty_branches(branches: Mapping[str, Mapping[str, Any]]) -> dict[str, Any]:
    """Drop query branches that carry no filter values.

    Only the three known branches are inspected; values inside a branch are
    left alone so falsy filters such as ``index=0`` survive.
    """
    return {
        name: dict(branches[name])
        for name in _BRANCHES
        if name in branches and not _is_empty(branches[name])
    }


def compose_invoice_query(query_params: Mapping[str, Any]) -> dict[str, Any]:
    return prune_empty_branches(
        {
            "mandatoryQueryParams": select_mandatory_params(query_params),
            "additionalQueryParams": _pick(query_params, ADDITIONAL_FIELDS),
            "transactionQueryParams": _pick(query_params, TRANSACTION_FIELDS),
        }
    )
