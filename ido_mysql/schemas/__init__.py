# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Input models of the ido-mysql feature."""

from .connection import DEFAULT_TABLE_PREFIX, ConnectionParameters
from .feature import (
    CLEANUP_KEYS,
    DB_CATEGORIES,
    Ensure,
    IdoMysqlParams,
    SchemaImportPolicy,
)
from .tls import ManagedCredentialFile, TLSBundle, TLSOptions

__all__ = [
    "DEFAULT_TABLE_PREFIX",
    "ConnectionParameters",
    "CLEANUP_KEYS",
    "DB_CATEGORIES",
    "Ensure",
    "IdoMysqlParams",
    "SchemaImportPolicy",
    "ManagedCredentialFile",
    "TLSBundle",
    "TLSOptions",
]
