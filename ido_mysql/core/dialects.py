# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Database client dialects.

Each dialect knows its client binary and its TLS flag convention, and builds
the schema pre-check and import commands from them. Both commands of one run
come from the same dialect.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import SecretStr

from .resources import CommandSpec

if TYPE_CHECKING:
    from ..schemas.connection import ConnectionParameters
    from ..schemas.tls import TLSBundle

# The client reads the password from here; it never goes on the command line
PASSWORD_ENV = "MYSQL_PWD"


class Dialect(str, Enum):
    MYSQL = "mysql"
    MARIADB = "mariadb"

    @property
    def client(self) -> str:
        return "mariadb" if self is Dialect.MARIADB else "mysql"

    def tls_flags(self, bundle: Optional["TLSBundle"]) -> list[str]:
        if bundle is None:
            return []
        if self is Dialect.MYSQL:
            flags = ["--ssl-mode=VERIFY_CA"]
        else:
            flags = ["--ssl"]
        flags += [
            f"--ssl-ca={bundle.cacert_path}",
            f"--ssl-cert={bundle.cert_path}",
            f"--ssl-key={bundle.key_path}",
        ]
        if bundle.capath:
            flags.append(f"--ssl-capath={bundle.capath}")
        if bundle.cipher:
            flags.append(f"--ssl-cipher={bundle.cipher}")
        return flags

    def connection_args(
        self, connection: "ConnectionParameters", bundle: Optional["TLSBundle"] = None
    ) -> list[str]:
        args = [self.client]
        if connection.socket_path:
            args.append(f"--socket={connection.socket_path}")
        else:
            args += ["-h", connection.host]
            if connection.port:
                args += ["-P", str(connection.port)]
        args += ["-u", connection.user]
        args += self.tls_flags(bundle)
        return args

    def _env(self, connection: "ConnectionParameters") -> dict[str, SecretStr]:
        return {PASSWORD_ENV: connection.password}

    def build_check_command(
        self, connection: "ConnectionParameters", bundle: Optional["TLSBundle"] = None
    ) -> CommandSpec:
        """Query the version table; succeeds only when the schema exists."""
        argv = self.connection_args(connection, bundle) + [
            "-Ns",
            "-e",
            f"SELECT version FROM {connection.dbversion_table}",
            connection.database,
        ]
        return CommandSpec(argv=tuple(argv), env=self._env(connection))

    def build_import_command(
        self,
        connection: "ConnectionParameters",
        schema_path: str,
        bundle: Optional["TLSBundle"] = None,
    ) -> CommandSpec:
        """Feed the schema file to the client on stdin."""
        argv = self.connection_args(connection, bundle) + [connection.database]
        return CommandSpec(argv=tuple(argv), env=self._env(connection), stdin_path=schema_path)
