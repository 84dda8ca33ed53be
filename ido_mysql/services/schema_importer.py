# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
One-time schema import, guarded by a pre-check.

State machine:
    skipped                                      (import disabled)
    pending -> verified-present                  (schema already there)
    pending -> verified-absent -> imported       (first run)

The pre-check always runs before the import. Only "table does not exist"
counts as absent: any other pre-check failure (bad credentials, unknown
database, unreachable server, missing client) is fatal, because importing on
top of an unknown state could corrupt an existing database. A version table
without a version row is fatal as well: it is what an interrupted import
leaves behind.
"""
import re
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Optional

from ..core.dialects import Dialect
from ..core.ordering import Catalog
from ..core.resources import CommandResource, CommandResult, CommandSpec
from ..errors import SchemaCheckError, SchemaImportError
from ..logging_config import get_logger
from ..schemas.connection import ConnectionParameters
from ..schemas.tls import TLSBundle

logger = get_logger(__name__)

# MySQL/MariaDB ER_NO_SUCH_TABLE
ER_NO_SUCH_TABLE = 1146
SERVER_ERROR_PATTERN = re.compile(r"ERROR (\d+)")
STDERR_DETAIL_LIMIT = 500

CommandRunner = Callable[[CommandSpec], Awaitable[CommandResult]]


class SchemaImportState(str, Enum):
    SKIPPED = "skipped"
    PENDING = "pending"
    VERIFIED_ABSENT = "verified-absent"
    IMPORTED = "imported"
    VERIFIED_PRESENT = "verified-present"


_TRANSITIONS = {
    SchemaImportState.PENDING: {SchemaImportState.VERIFIED_ABSENT, SchemaImportState.VERIFIED_PRESENT},
    SchemaImportState.VERIFIED_ABSENT: {SchemaImportState.IMPORTED},
}


class CheckOutcome(str, Enum):
    PRESENT = "present"
    EMPTY = "empty"
    ABSENT = "absent"
    FAILED = "failed"


def parse_server_error(stderr: str) -> Optional[int]:
    match = SERVER_ERROR_PATTERN.search(stderr or "")
    return int(match.group(1)) if match else None


def classify_check(result: CommandResult) -> CheckOutcome:
    if result.ok:
        # The version row is inserted last by the schema script
        if not result.stdout.strip():
            return CheckOutcome.EMPTY
        return CheckOutcome.PRESENT
    if parse_server_error(result.stderr) == ER_NO_SUCH_TABLE:
        return CheckOutcome.ABSENT
    return CheckOutcome.FAILED


class SchemaImporter:
    """Guarded schema import for one connection and dialect.

    A dialect of None means the import is disabled.
    """

    name = "idomysql-import-schema"

    def __init__(
        self,
        dialect: Optional[Dialect],
        connection: ConnectionParameters,
        schema_path: str,
        bundle: Optional[TLSBundle] = None,
    ):
        self.dialect = dialect
        self.connection = connection
        self.schema_path = schema_path
        self.bundle = bundle
        self.state = SchemaImportState.SKIPPED if dialect is None else SchemaImportState.PENDING
        self.history: list[SchemaImportState] = [self.state]

    @property
    def enabled(self) -> bool:
        return self.dialect is not None

    @property
    def check_command(self) -> CommandSpec:
        return self.dialect.build_check_command(self.connection, self.bundle)

    @property
    def import_command(self) -> CommandSpec:
        return self.dialect.build_import_command(self.connection, self.schema_path, self.bundle)

    def _transition(self, state: SchemaImportState) -> None:
        if state not in _TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Invalid schema import transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _secrets(self) -> list[str]:
        return [self.connection.password.get_secret_value()]

    def declare(self, catalog: Catalog) -> Optional[CommandResource]:
        if not self.enabled:
            return None
        return catalog.add(
            CommandResource(name=self.name, command=self.import_command, unless=self.check_command)
        )

    async def converge(self, run: CommandRunner) -> bool:
        """Run the pre-check and, only if the schema is absent, the import.

        Returns True when the import ran.

        Raises:
            SchemaCheckError: the pre-check failed for any reason but a missing table
            SchemaImportError: the import failed; it is not retried
        """
        if not self.enabled:
            self.state = SchemaImportState.SKIPPED
            self.history = [self.state]
            return False

        # Every pass decides from the database, never from a previous pass
        self.state = SchemaImportState.PENDING
        self.history = [self.state]

        check = self.check_command
        logger.info("Checking database schema", command=check.echo(), dialect=self.dialect.value)
        result = await run(check)
        outcome = classify_check(result)

        if outcome is CheckOutcome.PRESENT:
            self._transition(SchemaImportState.VERIFIED_PRESENT)
            logger.info("Database schema present", table=self.connection.dbversion_table)
            return False

        if outcome is CheckOutcome.EMPTY:
            table = self.connection.dbversion_table
            logger.error("Schema version table is empty", table=table)
            raise SchemaCheckError(
                f"Table {table} exists but holds no version row; a previous import may have been interrupted",
                exit_status=result.exit_status,
                step="schema-import",
                details={"table": table, "command": check.echo()},
                secrets=self._secrets(),
            )

        if outcome is CheckOutcome.FAILED:
            server_error = parse_server_error(result.stderr)
            logger.error(
                "Schema pre-check failed",
                exit_status=result.exit_status,
                server_error=server_error,
            )
            raise SchemaCheckError(
                f"Schema pre-check failed with exit status {result.exit_status}",
                exit_status=result.exit_status,
                step="schema-import",
                details={
                    "server_error": server_error,
                    "stderr": result.stderr[:STDERR_DETAIL_LIMIT],
                    "command": check.echo(),
                },
                secrets=self._secrets(),
            )

        self._transition(SchemaImportState.VERIFIED_ABSENT)
        command = self.import_command
        logger.info("Importing database schema", command=command.echo(), schema=self.schema_path)
        result = await run(command)
        if not result.ok:
            logger.error("Schema import failed", exit_status=result.exit_status)
            raise SchemaImportError(
                f"Schema import failed with exit status {result.exit_status}",
                exit_status=result.exit_status,
                step="schema-import",
                details={
                    "server_error": parse_server_error(result.stderr),
                    "stderr": result.stderr[:STDERR_DETAIL_LIMIT],
                    "command": command.echo(),
                },
                secrets=self._secrets(),
            )

        self._transition(SchemaImportState.IMPORTED)
        logger.info("Database schema imported", table=self.connection.dbversion_table)
        return True
