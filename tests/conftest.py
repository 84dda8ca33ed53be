"""Shared fixtures for ido-mysql tests."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from ido_mysql.adapters.runtime_interface import ApplyResult, ConvergenceRuntime
from ido_mysql.config import Icinga2Base
from ido_mysql.core.resources import (
    CommandResult,
    CommandSpec,
    FileResource,
    LinkResource,
    PackageResource,
    TLSClientResource,
)
from ido_mysql.logging_config import forget_secrets
from ido_mysql.services.credential_store import InMemoryCredentialStore

PASSWORD = "s3cr3t-Pa55"

MISSING_TABLE = CommandResult(
    exit_status=1,
    stderr="ERROR 1146 (42S02) at line 1: Table 'icinga.icinga_dbversion' doesn't exist\n",
)
ACCESS_DENIED = CommandResult(
    exit_status=1,
    stderr="ERROR 1045 (28000): Access denied for user 'icinga'@'localhost' (using password: YES)\n",
)
SCHEMA_PRESENT = CommandResult(exit_status=0, stdout="1.14.3\n")


@pytest.fixture(autouse=True)
def _forget_registered_secrets():
    yield
    forget_secrets()


@pytest.fixture
def base() -> Icinga2Base:
    return Icinga2Base.for_os_family("Debian")


@pytest.fixture
def redhat_base() -> Icinga2Base:
    return Icinga2Base.for_os_family("RedHat")


@pytest.fixture
def connection_input() -> dict:
    return {"host": "db.example.com", "user": "icinga", "password": PASSWORD, "database": "icinga"}


# ---------------------------------------------------------------------------
# PEM material
# ---------------------------------------------------------------------------

@dataclass
class PemMaterial:
    key: str
    cert: str
    cacert: str


def _name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def make_pem(cn: str = "icinga-ido") -> PemMaterial:
    """Self-signed CA plus a client certificate it signed."""
    now = datetime.now(timezone.utc)

    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(_name("ido-test-ca"))
        .issuer_name(_name("ido-test-ca"))
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )

    key = ec.generate_private_key(ec.SECP256R1())
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(cn))
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(ca_key, hashes.SHA256())
    )

    return PemMaterial(
        key=key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode(),
        cert=cert.public_bytes(serialization.Encoding.PEM).decode(),
        cacert=ca_cert.public_bytes(serialization.Encoding.PEM).decode(),
    )


@pytest.fixture(scope="session")
def pem() -> PemMaterial:
    return make_pem()


@pytest.fixture(scope="session")
def other_pem() -> PemMaterial:
    return make_pem("someone-else")


# ---------------------------------------------------------------------------
# Recording runtime
# ---------------------------------------------------------------------------

@dataclass
class FakeRuntime(ConvergenceRuntime):
    """In-memory ConvergenceRuntime that records every call.

    Schema state is simulated: the pre-check reports the table missing until
    an import succeeded, unless check_result overrides it.
    """

    files: dict = field(default_factory=dict)
    links: dict = field(default_factory=dict)
    packages: set = field(default_factory=set)
    credential_store: InMemoryCredentialStore = field(default_factory=InMemoryCredentialStore)
    schema_present: bool = False
    check_result: Optional[CommandResult] = None
    import_result: CommandResult = field(default_factory=lambda: CommandResult(exit_status=0))
    fail_refs: set = field(default_factory=set)
    calls: list = field(default_factory=list)
    commands: list = field(default_factory=list)
    reloads: int = 0
    on_command: Optional[Callable[[CommandSpec], None]] = None

    def _fail(self, ref: str) -> Optional[ApplyResult]:
        if ref in self.fail_refs:
            return ApplyResult(success=False, error="simulated failure")
        return None

    async def apply_file(self, resource: FileResource) -> ApplyResult:
        self.calls.append(resource.ref)
        failure = self._fail(resource.ref)
        if failure:
            return failure
        if not resource.present:
            return ApplyResult(success=True, changed=self.files.pop(resource.path, None) is not None)
        state = (resource.content, resource.mode, resource.owner, resource.group)
        changed = self.files.get(resource.path) != state
        self.files[resource.path] = state
        return ApplyResult(success=True, changed=changed)

    async def apply_package(self, resource: PackageResource) -> ApplyResult:
        self.calls.append(resource.ref)
        failure = self._fail(resource.ref)
        if failure:
            return failure
        changed = resource.name not in self.packages
        self.packages.add(resource.name)
        return ApplyResult(success=True, changed=changed)

    async def apply_link(self, resource: LinkResource) -> ApplyResult:
        self.calls.append(resource.ref)
        failure = self._fail(resource.ref)
        if failure:
            return failure
        if not resource.present:
            return ApplyResult(success=True, changed=self.links.pop(resource.path, None) is not None)
        changed = self.links.get(resource.path) != resource.target
        self.links[resource.path] = resource.target
        return ApplyResult(success=True, changed=changed)

    async def register_tls_client(self, resource: TLSClientResource) -> ApplyResult:
        self.calls.append(resource.ref)
        failure = self._fail(resource.ref)
        if failure:
            return failure
        changed = await self.credential_store.register(resource.bundle.identity, resource.bundle)
        return ApplyResult(success=True, changed=changed)

    async def run_command(self, command: CommandSpec) -> CommandResult:
        self.commands.append(command)
        if self.on_command:
            self.on_command(command)
        if command.stdin_path is None:
            if self.check_result is not None:
                return self.check_result
            return SCHEMA_PRESENT if self.schema_present else MISSING_TABLE
        if self.import_result.ok:
            self.schema_present = True
        return self.import_result

    async def request_reload(self) -> ApplyResult:
        self.calls.append("reload")
        self.reloads += 1
        return ApplyResult(success=True, changed=True)

    @property
    def imports(self) -> list[CommandSpec]:
        return [c for c in self.commands if c.stdin_path is not None]


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()
