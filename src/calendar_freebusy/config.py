"""Configuration management for the free/busy core."""

from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .directory import StaticIdentityService, StaticPermissionFacts, TenantSettings
from .storage.memory import InMemoryCalendarStorage, InMemoryStorageProvider
from .utils.exceptions import ConfigurationError

load_dotenv()


class AppConfig(BaseSettings):
    """Application configuration."""

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: Optional[Path] = Field(default=None, validation_alias="LOG_FILE")

    # Free/busy settings
    default_timezone: str = Field(default="UTC", validation_alias="DEFAULT_TIMEZONE")
    cross_tenant_free_busy: bool = Field(default=True, validation_alias="CROSS_TENANT_FREE_BUSY")
    merge_free_busy: bool = Field(default=True, validation_alias="FREEBUSY_MERGE")
    lookback_days: int = Field(default=0, validation_alias="FREEBUSY_LOOKBACK_DAYS")
    lookahead_days: int = Field(default=7, validation_alias="FREEBUSY_LOOKAHEAD_DAYS")

    # Dataset for the command line interface
    data_file: Path = Field(default=Path("freebusy_data.yaml"), validation_alias="DATA_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_parse_none_str="",  # Treat empty string as None
    )


class DatasetConfig:
    """Tenants, users and events loaded from YAML."""

    def __init__(self, data_path: Path, default_timezone: str = "UTC"):
        self.default_timezone = default_timezone
        self.tenants: dict[int, TenantSettings] = {}

        if data_path.exists():
            with open(data_path) as f:
                data = yaml.safe_load(f) or {}

            try:
                for tenant_id, tenant_data in (data.get("tenants") or {}).items():
                    self.tenants[int(tenant_id)] = TenantSettings.model_validate(tenant_data or {})
            except (ValidationError, ValueError) as e:
                raise ConfigurationError(f"Invalid dataset {data_path}: {e}") from e

    @property
    def has_config(self) -> bool:
        return len(self.tenants) > 0

    def storage_provider(self) -> InMemoryStorageProvider:
        return InMemoryStorageProvider(
            {tenant_id: InMemoryCalendarStorage(t.events) for tenant_id, t in self.tenants.items()}
        )

    def permission_facts(self, tenant_id: int, viewer_id: Optional[int] = None) -> StaticPermissionFacts:
        tenant = self.tenants.get(tenant_id)
        if tenant is None:
            raise ConfigurationError(f"Unknown tenant: {tenant_id}")
        return StaticPermissionFacts(tenant, viewer_id, self.default_timezone)

    def identity_service(self) -> StaticIdentityService:
        return StaticIdentityService(self.tenants)


# Global config instance
config = AppConfig()
