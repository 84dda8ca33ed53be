# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Declarative resource descriptions handed to a convergence runtime.

A resource describes desired state only. Applying it is the runtime's job;
every runtime operation must be idempotent.
"""

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from pydantic import SecretStr

from ..errors import REDACTED

if TYPE_CHECKING:
    from ..schemas.tls import TLSBundle


class ResourceKind(str, Enum):
    FILE = "File"
    PACKAGE = "Package"
    LINK = "Link"
    COMMAND = "Exec"
    TLS_CLIENT = "TlsClient"


@dataclass(frozen=True)
class CommandSpec:
    """A command line run without a shell.

    Secret values travel only in env, never in argv, so echo() is always
    safe to log.
    """
    argv: tuple[str, ...]
    env: dict[str, SecretStr] = field(default_factory=dict)
    stdin_path: Optional[str] = None

    def echo(self) -> str:
        """Loggable rendition of the command, env values redacted."""
        parts = [f"{name}={REDACTED}" for name in sorted(self.env)]
        parts.append(shlex.join(self.argv))
        if self.stdin_path:
            parts.append(f"< {shlex.quote(self.stdin_path)}")
        return " ".join(parts)

    def environment(self) -> dict[str, str]:
        """Unwrapped environment, for the process that runs the command only."""
        return {name: value.get_secret_value() for name, value in self.env.items()}

    def __repr__(self) -> str:
        return f"CommandSpec({self.echo()!r})"

    def __str__(self) -> str:
        return self.echo()


@dataclass(frozen=True)
class CommandResult:
    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


@dataclass(frozen=True, kw_only=True)
class Resource:
    """Base resource. notify_reload wires a change of this resource to the service reload."""

    kind: ClassVar[ResourceKind]
    notify_reload: bool = False

    @property
    def title(self) -> str:
        raise NotImplementedError

    @property
    def ref(self) -> str:
        return f"{self.kind.value}[{self.title}]"

    def describe(self) -> dict:
        """Log-safe summary of the resource."""
        return {"ref": self.ref, "notify_reload": self.notify_reload}


@dataclass(frozen=True)
class FileResource(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.FILE

    path: str
    content: str = field(default="", repr=False)
    mode: str = "0644"
    owner: Optional[str] = None
    group: Optional[str] = None
    present: bool = True
    # Content is never logged or diffed when sensitive
    sensitive: bool = False

    @property
    def title(self) -> str:
        return self.path

    def describe(self) -> dict:
        return {
            **super().describe(),
            "mode": self.mode,
            "owner": self.owner,
            "group": self.group,
            "present": self.present,
            "sensitive": self.sensitive,
        }


@dataclass(frozen=True)
class PackageResource(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.PACKAGE

    name: str

    @property
    def title(self) -> str:
        return self.name


@dataclass(frozen=True)
class LinkResource(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.LINK

    path: str
    target: str
    present: bool = True

    @property
    def title(self) -> str:
        return self.path

    def describe(self) -> dict:
        return {**super().describe(), "target": self.target, "present": self.present}


@dataclass(frozen=True)
class CommandResource(Resource):
    """Command guarded by an 'unless' check: the command runs only if the check fails."""

    kind: ClassVar[ResourceKind] = ResourceKind.COMMAND

    name: str
    command: CommandSpec
    unless: CommandSpec

    @property
    def title(self) -> str:
        return self.name

    def describe(self) -> dict:
        return {
            **super().describe(),
            "command": self.command.echo(),
            "unless": self.unless.echo(),
        }


@dataclass(frozen=True)
class TLSClientResource(Resource):
    """Registration of a TLS client bundle with the credential store."""

    kind: ClassVar[ResourceKind] = ResourceKind.TLS_CLIENT

    bundle: "TLSBundle"

    @property
    def title(self) -> str:
        return self.bundle.identity

    def describe(self) -> dict:
        return {**super().describe(), **self.bundle.to_public_dict()}
