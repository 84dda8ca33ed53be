# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Local host runtime implementing ConvergenceRuntime.

Applies resources to the machine it runs on: atomic file writes, symlinks,
the OS family's package manager and the daemon reload command. Commands run
as asyncio subprocesses without a shell.

An optional root prefixes every managed path, so a whole catalog can be
applied to a scratch directory.
"""

import asyncio
import grp
import logging
import os
import pwd
import shlex
import tempfile
from dataclasses import dataclass
from typing import Optional

from ...config import get_settings
from ...core.resources import (
    CommandResult,
    CommandSpec,
    FileResource,
    LinkResource,
    PackageResource,
    TLSClientResource,
)
from ...services.credential_store import CredentialStore, InMemoryCredentialStore
from ..runtime_interface import ApplyResult, ConvergenceRuntime

logger = logging.getLogger(__name__)

COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class PackageCommands:
    query: tuple[str, ...]
    install: tuple[str, ...]
    env: tuple[tuple[str, str], ...] = ()
    # Substring of query stdout that marks the package installed; None means exit 0 suffices
    installed_marker: Optional[str] = None


PACKAGE_COMMANDS: dict[str, PackageCommands] = {
    "Debian": PackageCommands(
        query=("dpkg-query", "-W", "-f=${Status}"),
        install=("apt-get", "install", "-y", "-q"),
        env=(("DEBIAN_FRONTEND", "noninteractive"),),
        installed_marker="install ok installed",
    ),
    "RedHat": PackageCommands(query=("rpm", "-q"), install=("dnf", "install", "-y")),
    "Suse": PackageCommands(query=("rpm", "-q"), install=("zypper", "--non-interactive", "install")),
    "FreeBSD": PackageCommands(query=("pkg", "info", "-e"), install=("pkg", "install", "-y")),
}


class LocalRuntime(ConvergenceRuntime):
    """ConvergenceRuntime for the local host.

    Ownership is only enforced when running as root.
    """

    def __init__(
        self,
        os_family: str = "Debian",
        credential_store: Optional[CredentialStore] = None,
        reload_command: Optional[str] = None,
        root: Optional[str] = None,
    ):
        self.os_family = os_family
        self.credential_store = credential_store or InMemoryCredentialStore()
        self.reload_command = reload_command or get_settings().reload_command
        self.root = root

    def _path(self, path: str) -> str:
        if not self.root:
            return path
        return os.path.join(self.root, path.lstrip("/"))

    # --- Files ---

    async def apply_file(self, resource: FileResource) -> ApplyResult:
        path = self._path(resource.path)
        try:
            if not resource.present:
                if os.path.lexists(path):
                    os.remove(path)
                    logger.info(f"Removed {resource.ref}")
                    return ApplyResult(success=True, changed=True)
                return ApplyResult(success=True)

            changed = self._write_if_changed(path, resource)
            changed = self._ensure_mode(path, resource.mode) or changed
            changed = self._ensure_owner(path, resource.owner, resource.group) or changed
            if changed:
                # Content of sensitive files never reaches the log
                logger.info(f"Applied {resource.ref} (mode {resource.mode})")
            return ApplyResult(success=True, changed=changed)
        except (OSError, KeyError) as e:
            return ApplyResult(success=False, error=f"{resource.ref}: {getattr(e, 'strerror', None) or e}")

    def _write_if_changed(self, path: str, resource: FileResource) -> bool:
        data = resource.content.encode()
        try:
            with open(path, "rb") as f:
                if f.read() == data:
                    return False
        except FileNotFoundError:
            pass

        directory = os.path.dirname(path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".ido-mysql-")
        try:
            # Restrictive mode before any content lands on disk
            os.fchmod(fd, int(resource.mode, 8))
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return True

    def _ensure_mode(self, path: str, mode: str) -> bool:
        wanted = int(mode, 8)
        if os.stat(path).st_mode & 0o7777 == wanted:
            return False
        os.chmod(path, wanted)
        return True

    def _ensure_owner(self, path: str, owner: Optional[str], group: Optional[str]) -> bool:
        if os.geteuid() != 0 or (owner is None and group is None):
            return False
        uid = pwd.getpwnam(owner).pw_uid if owner else -1
        gid = grp.getgrnam(group).gr_gid if group else -1
        st = os.stat(path)
        if (uid in (-1, st.st_uid)) and (gid in (-1, st.st_gid)):
            return False
        os.chown(path, uid, gid)
        return True

    # --- Links ---

    async def apply_link(self, resource: LinkResource) -> ApplyResult:
        path = self._path(resource.path)
        try:
            if not resource.present:
                if os.path.lexists(path):
                    os.remove(path)
                    logger.info(f"Removed {resource.ref}")
                    return ApplyResult(success=True, changed=True)
                return ApplyResult(success=True)

            if os.path.islink(path) and os.readlink(path) == resource.target:
                return ApplyResult(success=True)

            directory = os.path.dirname(path)
            os.makedirs(directory, exist_ok=True)
            tmp_path = os.path.join(directory, f".{os.path.basename(path)}.tmp")
            if os.path.lexists(tmp_path):
                os.remove(tmp_path)
            os.symlink(resource.target, tmp_path)
            os.replace(tmp_path, path)
            logger.info(f"Applied {resource.ref} -> {resource.target}")
            return ApplyResult(success=True, changed=True)
        except OSError as e:
            return ApplyResult(success=False, error=f"{resource.ref}: {e.strerror or e}")

    # --- Packages ---

    async def apply_package(self, resource: PackageResource) -> ApplyResult:
        commands = PACKAGE_COMMANDS.get(self.os_family)
        if commands is None:
            return ApplyResult(success=False, error=f"No package manager known for {self.os_family}")
        env = {name: value for name, value in commands.env}

        query = await self._exec(commands.query + (resource.name,))
        installed = query.ok and (
            commands.installed_marker is None or commands.installed_marker in query.stdout
        )
        if installed:
            return ApplyResult(success=True)

        logger.info(f"Installing package {resource.name}")
        result = await self._exec(commands.install + (resource.name,), env=env)
        if not result.ok:
            return ApplyResult(
                success=False,
                error=f"{shlex.join(commands.install)} {resource.name} exited {result.exit_status}: "
                f"{result.stderr.strip()[:500]}",
            )
        return ApplyResult(success=True, changed=True)

    # --- Credentials ---

    async def register_tls_client(self, resource: TLSClientResource) -> ApplyResult:
        try:
            changed = await self.credential_store.register(resource.bundle.identity, resource.bundle)
            return ApplyResult(success=True, changed=changed)
        except Exception as e:
            return ApplyResult(success=False, error=str(e))

    # --- Commands ---

    async def run_command(self, command: CommandSpec) -> CommandResult:
        logger.debug(f"Running {command.echo()}")
        return await self._exec(command.argv, env=command.environment(), stdin_path=command.stdin_path)

    async def request_reload(self) -> ApplyResult:
        argv = tuple(shlex.split(self.reload_command))
        logger.info(f"Reloading service: {self.reload_command}")
        result = await self._exec(argv)
        if not result.ok:
            return ApplyResult(
                success=False,
                error=f"{self.reload_command} exited {result.exit_status}: {result.stderr.strip()[:500]}",
            )
        return ApplyResult(success=True, changed=True)

    async def _exec(
        self,
        argv: tuple[str, ...],
        env: Optional[dict[str, str]] = None,
        stdin_path: Optional[str] = None,
    ) -> CommandResult:
        full_env = {**os.environ, **(env or {})}
        stdin = asyncio.subprocess.DEVNULL
        if stdin_path:
            try:
                stdin = open(stdin_path, "rb")
            except OSError as e:
                return CommandResult(exit_status=1, stderr=f"{stdin_path}: {e.strerror}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=stdin,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=full_env,
            )
            stdout, stderr = await process.communicate()
        except FileNotFoundError:
            return CommandResult(exit_status=COMMAND_NOT_FOUND, stderr=f"{argv[0]}: command not found")
        except OSError as e:
            return CommandResult(exit_status=COMMAND_NOT_EXECUTABLE, stderr=f"{argv[0]}: {e.strerror or e}")
        finally:
            if stdin_path:
                stdin.close()
        return CommandResult(
            exit_status=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
