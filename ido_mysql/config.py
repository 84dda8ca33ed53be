# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Configuration settings for the ido-mysql feature.

All settings can be overridden via environment variables with the ICINGA2_
prefix (or a local .env file). Settings only seed defaults: the convergence
core receives an explicit Icinga2Base and never reads settings itself.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

# Per OS family values of the base icinga2 installation
OS_FAMILY_DEFAULTS: dict[str, dict] = {
    "Debian": {
        "user": "nagios",
        "group": "nagios",
        "conf_dir": "/etc/icinga2",
        "ssl_dir": "/var/lib/icinga2/certs",
        "ido_mysql_package_name": "icinga2-ido-mysql",
        "ido_mysql_schema_path": "/usr/share/icinga2-ido-mysql/schema/mysql.sql",
    },
    "RedHat": {
        "user": "icinga",
        "group": "icinga",
        "conf_dir": "/etc/icinga2",
        "ssl_dir": "/var/lib/icinga2/certs",
        "ido_mysql_package_name": "icinga2-ido-mysql",
        "ido_mysql_schema_path": "/usr/share/icinga2-ido-mysql/schema/mysql.sql",
    },
    "Suse": {
        "user": "icinga",
        "group": "icinga",
        "conf_dir": "/etc/icinga2",
        "ssl_dir": "/var/lib/icinga2/certs",
        "ido_mysql_package_name": "icinga2-ido-mysql",
        "ido_mysql_schema_path": "/usr/share/icinga2-ido-mysql/schema/mysql.sql",
    },
    # The FreeBSD port ships the IDO libraries with the main package
    "FreeBSD": {
        "user": "icinga",
        "group": "icinga",
        "conf_dir": "/usr/local/etc/icinga2",
        "ssl_dir": "/var/lib/icinga2/certs",
        "ido_mysql_package_name": None,
        "ido_mysql_schema_path": "/usr/local/share/icinga2-ido-mysql/schema/mysql.sql",
    },
}


class Settings(BaseSettings):
    """Process-level settings.

    Path and ownership fields left unset fall back to the OS family defaults
    when an Icinga2Base is built from them.
    """

    model_config = SettingsConfigDict(
        env_prefix="ICINGA2_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Base installation
    os_family: str = "Debian"
    conf_dir: Optional[str] = None
    ssl_dir: Optional[str] = None
    user: Optional[str] = None
    group: Optional[str] = None
    manage_packages: bool = True
    service_name: str = "icinga2"
    reload_command: str = Field(
        default="systemctl reload icinga2",
        description="Command run by the local runtime when a reload is requested",
    )

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_masking_enabled: bool = True
    log_masking_patterns: str = "password,passwd,pwd,secret,private_key,ssl_key_content"

    @property
    def log_masking_patterns_list(self) -> list[str]:
        """Return masking key patterns as a list"""
        return [p.strip() for p in self.log_masking_patterns.split(",") if p.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class Icinga2Base(BaseModel):
    """Shared values owned by the base icinga2 installation.

    The ido-mysql feature cannot exist without the base installation; passing
    this object is what declares that the base is present.
    """

    model_config = ConfigDict(frozen=True)

    os_family: str
    conf_dir: str
    ssl_dir: str
    user: str
    group: str
    manage_packages: bool = True
    service_name: str = "icinga2"
    ido_mysql_package_name: Optional[str] = None
    ido_mysql_schema_path: str

    @classmethod
    def for_os_family(cls, os_family: str, **overrides) -> "Icinga2Base":
        """Build the base from the OS family defaults, applying overrides."""
        defaults = OS_FAMILY_DEFAULTS.get(os_family)
        if defaults is None:
            supported = ", ".join(sorted(OS_FAMILY_DEFAULTS))
            raise ConfigurationError(
                f"Unsupported OS family '{os_family}'. Supported: {supported}",
                step="base",
                details={"os_family": os_family},
            )
        values = {**defaults, **{k: v for k, v in overrides.items() if v is not None}}
        return cls(os_family=os_family, **values)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Icinga2Base":
        return cls.for_os_family(
            settings.os_family,
            conf_dir=settings.conf_dir,
            ssl_dir=settings.ssl_dir,
            user=settings.user,
            group=settings.group,
            manage_packages=settings.manage_packages,
            service_name=settings.service_name,
        )

    @property
    def features_available_dir(self) -> str:
        return f"{self.conf_dir}/features-available"

    @property
    def features_enabled_dir(self) -> str:
        return f"{self.conf_dir}/features-enabled"
