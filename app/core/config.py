from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services.envelope import SoftwareData, TechnicalUser


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_key: str
    nav_base_url: str = "https://api-test.onlineszamla.nav.gov.hu/invoiceService/v3"
    nav_login: str = ""
    nav_password: str = ""
    nav_tax_number: str = ""
    nav_signature_key: str = ""
    software_id: str = "HU00000000-0000001"
    software_name: str = "Invoice Digest Service"
    software_main_version: str = "1.0"
    software_dev_name: str = ""
    software_dev_contact: str = ""
    software_dev_country_code: str | None = "HU"
    software_dev_tax_number: str | None = None
    request_timeout_s: float = 30.0
    retry_attempts: int = 3
    retry_delay_s: float = 2.0
    log_level: str = "INFO"

    @property
    def nav_configured(self) -> bool:
        return all(
            (
                self.nav_login,
                self.nav_password,
                self.nav_tax_number,
                self.nav_signature_key,
            )
        )

    def technical_user(self) -> TechnicalUser:
        return TechnicalUser(
            login=self.nav_login,
            password=self.nav_password,
            tax_number=self.nav_tax_number,
            signature_key=self.nav_signature_key,
        )

    def software_data(self) -> SoftwareData:
        return SoftwareData(
            software_id=self.software_id,
            software_name=self.software_name,
            software_main_version=self.software_main_version,
            software_dev_name=self.software_dev_name,
            software_dev_contact=self.software_dev_contact,
            software_dev_country_code=self.software_dev_country_code,
            software_dev_tax_number=self.software_dev_tax_number,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
