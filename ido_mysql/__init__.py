# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Icinga 2 ido-mysql feature convergence.

Declares the state of the ``ido-mysql`` feature (client package, optional TLS
client credentials, one-time schema import, rendered feature configuration and
the enable link) and converges a host towards it.

Usage:
    from ido_mysql import Icinga2Base, IdoMysqlFeature, IdoMysqlParams, Converger
    from ido_mysql.adapters.local import LocalRuntime

    feature = IdoMysqlFeature(Icinga2Base.for_os_family("Debian"), params)
    report = await Converger(LocalRuntime()).converge(feature)
"""

from .config import Icinga2Base, Settings, get_settings
from .converger import ConvergenceReport, Converger
from .errors import (
    ConfigurationError,
    ExternalCommandError,
    IdoError,
    PreconditionError,
    RenderError,
)
from .feature import IdoMysqlFeature
from .schemas import ConnectionParameters, Ensure, IdoMysqlParams, SchemaImportPolicy, TLSOptions

__version__ = "1.0.0"

__all__ = [
    "Icinga2Base",
    "Settings",
    "get_settings",
    "ConvergenceReport",
    "Converger",
    "ConfigurationError",
    "ExternalCommandError",
    "IdoError",
    "PreconditionError",
    "RenderError",
    "IdoMysqlFeature",
    "ConnectionParameters",
    "Ensure",
    "IdoMysqlParams",
    "SchemaImportPolicy",
    "TLSOptions",
]
