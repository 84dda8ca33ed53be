# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Parameters of the ido-mysql feature."""

import re
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.dialects import Dialect
from ..errors import ConfigurationError, IdoErrorCode
from .connection import ConnectionParameters
from .tls import TLSOptions

DURATION_PATTERN = re.compile(r"^\d+(\.\d+)?(ms|s|m|h|d)$")

CLEANUP_KEYS = frozenset({
    "acknowledgements_age",
    "commenthistory_age",
    "contactnotifications_age",
    "contactnotificationmethods_age",
    "downtimehistory_age",
    "eventhandlers_age",
    "externalcommands_age",
    "flappinghistory_age",
    "hostchecks_age",
    "logentries_age",
    "notifications_age",
    "processevents_age",
    "statehistory_age",
    "servicechecks_age",
    "systemcommands_age",
})

DB_CATEGORIES = frozenset({
    "DbCatConfig",
    "DbCatState",
    "DbCatAcknowledgement",
    "DbCatComment",
    "DbCatDowntime",
    "DbCatEventHandler",
    "DbCatExternalCommand",
    "DbCatFlapping",
    "DbCatCheck",
    "DbCatLog",
    "DbCatNotification",
    "DbCatProgramStatus",
    "DbCatRetention",
    "DbCatStateHistory",
    "DbCatEverything",
})


class Ensure(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class SchemaImportPolicy(str, Enum):
    """Whether, and with which client dialect, the schema is imported."""
    DISABLED = "disabled"
    MYSQL = "mysql"
    MARIADB = "mariadb"

    @classmethod
    def parse(cls, value: Any) -> "SchemaImportPolicy":
        """Accept False/None, True (mysql), or a dialect name."""
        if isinstance(value, cls):
            return value
        if value is None or value is False:
            return cls.DISABLED
        if value is True:
            return cls.MYSQL
        if isinstance(value, str) and value.lower() in {m.value for m in cls}:
            return cls(value.lower())
        raise ValueError(
            f"Unsupported schema import dialect {value!r}; expected 'mysql' or 'mariadb'"
        )

    @property
    def enabled(self) -> bool:
        return self is not SchemaImportPolicy.DISABLED

    @property
    def dialect(self) -> Optional[Dialect]:
        if self is SchemaImportPolicy.MYSQL:
            return Dialect.MYSQL
        if self is SchemaImportPolicy.MARIADB:
            return Dialect.MARIADB
        return None


Duration = Union[int, str]


def _check_duration(value: Duration) -> Duration:
    if isinstance(value, bool):
        raise ValueError("duration must be seconds or a string like '48h'")
    if isinstance(value, int):
        if value < 0:
            raise ValueError("duration must not be negative")
        return value
    if not DURATION_PATTERN.match(value):
        raise ValueError(f"invalid duration {value!r}; expected e.g. '30s', '48h', '7d'")
    return value


class IdoMysqlParams(BaseModel):
    """All inputs of one ido-mysql feature declaration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ensure: Ensure = Ensure.PRESENT
    connection: ConnectionParameters
    tls: TLSOptions = Field(default_factory=TLSOptions)

    # Instance metadata and HA
    instance_name: Optional[str] = None
    instance_description: Optional[str] = None
    enable_ha: Optional[bool] = None
    failover_timeout: Optional[Duration] = None

    # Cleanup policy and category filter
    cleanup: Optional[dict[str, Duration]] = None
    categories: Optional[list[str]] = None

    import_schema: SchemaImportPolicy = SchemaImportPolicy.DISABLED

    @field_validator("import_schema", mode="before")
    @classmethod
    def parse_import_schema(cls, v: Any) -> SchemaImportPolicy:
        return SchemaImportPolicy.parse(v)

    @field_validator("failover_timeout")
    @classmethod
    def check_failover_timeout(cls, v: Optional[Duration]) -> Optional[Duration]:
        return None if v is None else _check_duration(v)

    @field_validator("cleanup")
    @classmethod
    def check_cleanup(cls, v: Optional[dict[str, Duration]]) -> Optional[dict[str, Duration]]:
        if v is None:
            return v
        unknown = sorted(set(v) - CLEANUP_KEYS)
        if unknown:
            raise ValueError(f"unknown cleanup keys: {', '.join(unknown)}")
        return {key: _check_duration(value) for key, value in v.items()}

    @field_validator("categories")
    @classmethod
    def check_categories(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        unknown = sorted(set(v) - DB_CATEGORIES)
        if unknown:
            raise ValueError(f"unknown categories: {', '.join(unknown)}")
        return v

    @property
    def enabled(self) -> bool:
        return self.ensure is Ensure.PRESENT

    @classmethod
    def from_input(cls, data: dict[str, Any]) -> "IdoMysqlParams":
        """Validate raw input, turning validation failures into ConfigurationError.

        Input values are left out of the error details so that secrets never
        leak into the message.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_input=False, include_context=False)
            locations = [".".join(str(part) for part in err["loc"]) for err in errors]
            code = (
                IdoErrorCode.UNSUPPORTED_DIALECT
                if any(loc == "import_schema" for loc in locations)
                else IdoErrorCode.INVALID_CONFIGURATION
            )
            summary = "; ".join(f"{loc}: {err['msg']}" for loc, err in zip(locations, errors))
            raise ConfigurationError(
                f"Invalid ido-mysql parameters: {summary}",
                code=code,
                step="parameters",
                details={"errors": [{"loc": loc, "msg": err["msg"]} for loc, err in zip(locations, errors)]},
            ) from None
