# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Database connection parameters."""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_TABLE_PREFIX = "icinga_"
TABLE_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9_]*$")


class ConnectionParameters(BaseModel):
    """Connection to the IDO database.

    The password is a SecretStr: it renders as '**********' in repr/str and
    must be unwrapped explicitly with get_secret_value().
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "127.0.0.1"
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    socket_path: Optional[str] = None
    user: str = "icinga"
    password: SecretStr
    database: str = "icinga"
    table_prefix: Optional[str] = None

    @field_validator("host", "user", "database")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("table_prefix")
    @classmethod
    def check_table_prefix(cls, v: Optional[str]) -> Optional[str]:
        # Interpolated into the pre-check query
        if v is not None and not TABLE_PREFIX_PATTERN.match(v):
            raise ValueError("may only contain letters, digits and underscores")
        return v

    @field_validator("password")
    @classmethod
    def password_not_blank(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("must not be empty")
        return v

    @property
    def dbversion_table(self) -> str:
        """Table whose presence marks an imported schema."""
        return f"{self.table_prefix or DEFAULT_TABLE_PREFIX}dbversion"
