# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Abstract convergence runtime.

Defines the contract any resource-convergence engine must implement to
apply a compiled ido-mysql catalog. The reference implementation applies to
the local host (see adapters/local/).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..core.resources import (
    CommandResult,
    CommandSpec,
    FileResource,
    LinkResource,
    PackageResource,
    TLSClientResource,
)


@dataclass
class ApplyResult:
    """Standardized result from any runtime apply operation."""

    success: bool
    changed: bool = False
    error: Optional[str] = None


class ConvergenceRuntime(ABC):
    """Abstract interface for applying resource descriptions.

    All apply operations MUST be idempotent: applying the same resource
    twice must report changed=False the second time and have no side
    effect. Failures are reported with success=False, not raised.
    """

    # --- Resources ---

    @abstractmethod
    async def apply_file(self, resource: FileResource) -> ApplyResult:
        """Ensure a file's content, mode and ownership, or its absence."""
        ...

    @abstractmethod
    async def apply_package(self, resource: PackageResource) -> ApplyResult:
        """Ensure a package is installed."""
        ...

    @abstractmethod
    async def apply_link(self, resource: LinkResource) -> ApplyResult:
        """Ensure a symlink points at its target, or is absent."""
        ...

    @abstractmethod
    async def register_tls_client(self, resource: TLSClientResource) -> ApplyResult:
        """Register a TLS bundle with the credential store."""
        ...

    # --- Commands and service ---

    @abstractmethod
    async def run_command(self, command: CommandSpec) -> CommandResult:
        """Run a command without a shell and return its exit status and output."""
        ...

    @abstractmethod
    async def request_reload(self) -> ApplyResult:
        """Reload the monitoring daemon."""
        ...


__all__ = ["ApplyResult", "CommandResult", "ConvergenceRuntime"]
