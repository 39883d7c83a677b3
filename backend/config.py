"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load credential fields from the OS keychain via ``keyring``.

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


def _split_type_ids(value: Any) -> frozenset[str]:
    if isinstance(value, str):
        return frozenset(part.strip() for part in value.split(",") if part.strip())
    return frozenset(value)


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
    DATABASE_URL: str = "sqlite:///./catalog.db"

    # Magento REST API (upstream catalog)
    MAGENTO_BASE_URL: str = ""
    MAGENTO_ACCESS_TOKEN: str = ""
    MAGENTO_ROOT_CATEGORY_ID: int = 2
    MAGENTO_REQUEST_TIMEOUT: float = 30.0

    # Sync pacing and batching
    SYNC_PAGE_SIZE: int = 50
    SYNC_RATE_LIMIT_MS: int = 300
    SYNC_INVENTORY_RATE_LIMIT_MS: int = 100
    SYNC_INCREMENTAL_INVENTORY_BATCH: int = 500
    SYNC_INCREMENTAL_IMAGES: bool = True

    # Product type handling. Env values are comma-separated, e.g. "virtual,downloadable".
    SYNC_SERVICE_TYPE_IDS: Any = frozenset({"virtual"})
    SYNC_COMPOSITE_TYPE_IDS: Any = frozenset({"configurable"})

    # Local image cache
    IMAGES_DIR: str = "./media/products"
    IMAGES_URL_PREFIX: str = "/media/products"

    @field_validator("MAGENTO_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Drop a trailing ``/`` so endpoint paths can be appended verbatim."""
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("SYNC_SERVICE_TYPE_IDS", "SYNC_COMPOSITE_TYPE_IDS", mode="before")
    @classmethod
    def parse_type_ids(cls, v: Any) -> frozenset[str]:
        return _split_type_ids(v)

    @field_validator("SYNC_PAGE_SIZE", "SYNC_INCREMENTAL_INVENTORY_BATCH")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be a positive integer, got {v}")
        return v

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
