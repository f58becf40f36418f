from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import get_settings
from app.main import app
from app.services.envelope import SoftwareData, TechnicalUser

TEST_API_KEY = "test-api-key"


@pytest.fixture
def technical_user() -> TechnicalUser:
    return TechnicalUser(
        login="techuser01",
        password="s3cret",
        tax_number="12345678",
        signature_key="ce-8f5e-215119fa7dd621DLMRHRLH2S",
    )


@pytest.fixture
def software_data() -> SoftwareData:
    return SoftwareData(
        software_id="HU12345678-0000001",
        software_name="Invoice Digest Service",
        software_main_version="1.0",
        software_dev_name="Example Kft.",
        software_dev_contact="dev@example.hu",
        software_dev_country_code="HU",
    )


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("API_KEY", TEST_API_KEY)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def client(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[AsyncClient, None]:
    monkeypatch.setenv("API_KEY", TEST_API_KEY)
    get_settings.cache_clear()
    app.state.nav_configured = True
    app.state.pipeline = MagicMock()
    app.state.pipeline.run = AsyncMock(
        return_value={"currentPage": 1, "availablePage": 1, "requestXml": "<x/>"}
    )
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.state.nav_configured = False
    get_settings.cache_clear()
