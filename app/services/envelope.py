import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

REQUEST_VERSION = "3.0"
HEADER_VERSION = "1.0"


@dataclass(frozen=True)
class TechnicalUser:
    login: str
    password: str = field(repr=False)
    tax_number: str
    signature_key: str = field(repr=False)


@dataclass(frozen=True)
class SoftwareData:
    software_id: str
    software_name: str
    software_main_version: str
    software_dev_name: str
    software_dev_contact: str
    software_operation: str = "ONLINE_SERVICE"
    software_dev_country_code: str | None = None
    software_dev_tax_number: str | None = None


def generate_request_id() -> str:
    """Return a 30 character alphanumeric request id."""
    return uuid.uuid4().hex.upper()[:30]


def format_timestamp(moment: datetime) -> str:
    """Format as ``2024-01-15T10:30:00.000Z``."""
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def password_hash(password: str) -> str:
    return hashlib.sha512(password.encode("utf-8")).hexdigest().upper()


def request_signature(request_id: str, moment: datetime, signature_key: str) -> str:
    # The signed timestamp drops separators and sub-second precision.
    stamp = moment.astimezone(UTC).strftime("%Y%m%d%H%M%S")
    data = f"{request_id}{stamp}{signature_key}"
    return hashlib.sha3_512(data.encode("utf-8")).hexdigest().upper()


def _software_element(software_data: SoftwareData) -> dict[str, Any]:
    element = {
        "softwareId": software_data.software_id,
        "softwareName": software_data.software_name,
        "softwareOperation": software_data.software_operation,
        "softwareMainVersion": software_data.software_main_version,
        "softwareDevName": software_data.software_dev_name,
        "softwareDevContact": software_data.software_dev_contact,
        "softwareDevCountryCode": software_data.software_dev_country_code,
        "softwareDevTaxNumber": software_data.software_dev_tax_number,
    }
    return {key: value for key, value in element.items() if value is not None}


def build_base_request(
    request_type: str,
    technical_user: TechnicalUser,
    software_data: SoftwareData,
    now: datetime | None = None,
) -> dict[str, dict[str, Any]]:
    """Build the authenticated envelope shared by every NAV operation.

    The operation payload is added by the caller under ``request_type``,
    after ``header``, ``user`` and ``software``.
    """
    moment = now or datetime.now(UTC)
    request_id = generate_request_id()
    return {
        request_type: {
            "header": {
                "requestId": request_id,
                "timestamp": format_timestamp(moment),
                "requestVersion": REQUEST_VERSION,
                "headerVersion": HEADER_VERSION,
            },
            "user": {
                "login": technical_user.login,
                "passwordHash": {
                    "@cryptoType": "SHA-512",
                    "#text": password_hash(technical_user.password),
                },
                "taxNumber": technical_user.tax_number,
                "requestSignature": {
                    "@cryptoType": "SHA3-512",
                    "#text": request_signature(
                        request_id, moment, technical_user.signature_key
                    ),
                },
            },
            "software": _software_element(software_data),
        }
    }
