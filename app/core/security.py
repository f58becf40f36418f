import hmac

from fastapi import Header, HTTPException

from app.core.config import get_settings


async def verify_api_key(api_key: str = Header(default="", alias="X-API-Key")) -> None:
    expected = get_settings().api_key.encode("utf-8")
    # compare_digest rejects non-ASCII str, so compare the encoded bytes.
    if not api_key or not hmac.compare_digest(api_key.encode("utf-8"), expected):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
