"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load credential fields from the system keychain via ``keyring``.

    Only fields whose uppercase name appears in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up.
    All other fields return ``None`` so the next source in the chain
    handles them.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        value = get_credential(env_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, is_complex = self.get_field_value(field_info, field_name)
            if value is not None:
                d[key] = value
        return d


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./etf_ledger.db"

    # Twelve Data (primary ETF listing feed)
    TWELVE_DATA_API_KEY: str = "demo"
    TWELVE_DATA_BASE_URL: str = "https://api.twelvedata.com"

    # OpenFIGI (identifier enrichment feed). The API key is optional; without
    # it OpenFIGI accepts fewer mapping jobs per request.
    OPENFIGI_API_KEY: str = ""
    OPENFIGI_API_URL: str = "https://api.openfigi.com/v3/mapping"
    OPENFIGI_MAX_WORKERS: int = 4

    # ETF sync
    ETF_SYNC_RATE_LIMIT: int = 60  # requests per minute to the listing feed
    ETF_SYNC_BATCH_SIZE: int = 100
    ETF_SYNC_MAX_ERROR_MESSAGES: int = 10

    # Ledger
    SUPPORTED_CURRENCIES: str = "EUR,USD,GBP,PLN,CHF"  # comma-separated
    DEFAULT_PORTFOLIO_NAME: str = "My Portfolio"

    @field_validator("ETF_SYNC_RATE_LIMIT")
    @classmethod
    def validate_rate_limit(cls, v: int) -> int:
        """Reject non-positive rates; the sync delay is ``60 / rate``."""
        if v <= 0:
            raise ValueError(f"ETF_SYNC_RATE_LIMIT must be positive, got {v}")
        return v

    @field_validator("ETF_SYNC_BATCH_SIZE")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError(f"ETF_SYNC_BATCH_SIZE must be between 1 and 100, got {v}")
        return v

    @property
    def supported_currencies(self) -> frozenset[str]:
        """``SUPPORTED_CURRENCIES`` as a set of uppercase ISO codes."""
        return frozenset(
            c.strip().upper() for c in self.SUPPORTED_CURRENCIES.split(",") if c.strip()
        )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
