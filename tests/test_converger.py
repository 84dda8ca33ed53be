"""Tests for full convergence passes against a recording runtime."""
import pytest
from structlog.testing import capture_logs

from ido_mysql.converger import Converger
from ido_mysql.core.notify import ReloadDecision
from ido_mysql.errors import (
    ConfigurationError,
    ExternalCommandError,
    IdoErrorCode,
    PackageInstallError,
    SchemaCheckError,
)
from ido_mysql.feature import IdoMysqlFeature
from ido_mysql.logging_config import SecretValueRedactor
from ido_mysql.services.schema_importer import SchemaImportState
from ido_mysql.services.tls_provisioner import TLS_IDENTITY

from conftest import ACCESS_DENIED, PASSWORD, FakeRuntime

PACKAGE = "Package[icinga2-ido-mysql]"
CONFIG = "File[/etc/icinga2/features-available/ido-mysql.conf]"
CONFIG_PATH = "/etc/icinga2/features-available/ido-mysql.conf"
TOGGLE = "Link[/etc/icinga2/features-enabled/ido-mysql.conf]"
TOGGLE_PATH = "/etc/icinga2/features-enabled/ido-mysql.conf"
PRESEED = "File[/etc/dbconfig-common/icinga2-ido-mysql.conf]"


def _feature(base, **params) -> IdoMysqlFeature:
    connection = {"host": "localhost", "user": "icinga", "password": PASSWORD, "database": "icinga"}
    return IdoMysqlFeature(base, {"connection": connection, **params})


def _trace_commands(runtime: FakeRuntime) -> None:
    runtime.on_command = lambda command: runtime.calls.append(
        "import" if command.stdin_path else "check"
    )


class TestScenarios:
    @pytest.mark.asyncio
    async def test_fresh_database_imports_then_enables(self, base):
        runtime = FakeRuntime()
        _trace_commands(runtime)

        report = await Converger(runtime).converge(_feature(base, import_schema="mysql"))

        assert runtime.calls == [PRESEED, PACKAGE, "check", "import", CONFIG, TOGGLE, "reload"]
        assert len(runtime.imports) == 1
        assert runtime.reloads == 1
        assert report.reload is ReloadDecision.FIRE
        assert report.schema_state is SchemaImportState.IMPORTED
        content = runtime.files[CONFIG_PATH][0]
        assert "ssl_" not in content and "enable_ssl" not in content
        assert 'host = "localhost"' in content

    @pytest.mark.asyncio
    async def test_present_schema_skips_import(self, base):
        runtime = FakeRuntime(schema_present=True)
        _trace_commands(runtime)

        report = await Converger(runtime).converge(_feature(base, import_schema="mysql"))

        assert runtime.calls == [PRESEED, PACKAGE, "check", CONFIG, TOGGLE, "reload"]
        assert runtime.imports == []
        assert report.schema_state is SchemaImportState.VERIFIED_PRESENT
        assert runtime.reloads == 1

    @pytest.mark.asyncio
    async def test_absent_writes_config_without_reload(self, base):
        runtime = FakeRuntime(links={TOGGLE_PATH: "../features-available/ido-mysql.conf"})

        report = await Converger(runtime).converge(_feature(base, ensure="absent"))

        assert runtime.calls == [PRESEED, PACKAGE, CONFIG, TOGGLE]
        assert CONFIG_PATH in runtime.files
        assert TOGGLE_PATH not in runtime.links
        assert runtime.reloads == 0
        assert report.reload is ReloadDecision.SKIP
        assert report.schema_state is SchemaImportState.SKIPPED


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_second_pass_changes_nothing(self, base):
        runtime = FakeRuntime()
        converger = Converger(runtime)

        await converger.converge(_feature(base, import_schema=True))
        report = await converger.converge(_feature(base, import_schema=True))

        assert not report.changed
        assert report.reload is ReloadDecision.SKIP
        assert report.schema_state is SchemaImportState.VERIFIED_PRESENT
        assert runtime.reloads == 1
        assert len(runtime.imports) == 1

    @pytest.mark.asyncio
    async def test_config_change_reloads_again(self, base):
        runtime = FakeRuntime()
        converger = Converger(runtime)
        await converger.converge(_feature(base))

        report = await converger.converge(_feature(base, instance_description="primary"))

        assert report.changed_refs == [CONFIG]
        assert runtime.reloads == 2

    @pytest.mark.asyncio
    async def test_disabling_never_reloads(self, base):
        runtime = FakeRuntime()
        converger = Converger(runtime)
        await converger.converge(_feature(base))

        report = await converger.converge(_feature(base, ensure="absent", instance_name="changed"))

        assert set(report.changed_refs) == {CONFIG, TOGGLE}
        assert runtime.reloads == 1


class TestTLS:
    @pytest.mark.asyncio
    async def test_bundle_registered_under_notified_identity(self, base, pem):
        runtime = FakeRuntime()
        feature = _feature(
            base, tls={"enabled": True, "key": pem.key, "cert": pem.cert, "cacert": pem.cacert}
        )

        report = await Converger(runtime).converge(feature)

        assert runtime.credential_store.identities == [TLS_IDENTITY]
        stored = await runtime.credential_store.lookup(TLS_IDENTITY)
        assert stored == feature.bundle
        assert f"TlsClient[{TLS_IDENTITY}]" in report.changed_refs
        content = runtime.files[CONFIG_PATH][0]
        assert f'ssl_key = "{stored.key_path}"' in content
        assert f'ssl_cert = "{stored.cert_path}"' in content
        assert f'ssl_ca = "{stored.cacert_path}"' in content
        assert runtime.files[stored.key_path][1] == "0600"
        assert runtime.reloads == 1

    @pytest.mark.asyncio
    async def test_rotated_cert_reloads(self, base, pem, other_pem):
        runtime = FakeRuntime()
        converger = Converger(runtime)
        await converger.converge(
            _feature(base, tls={"enabled": True, "key": pem.key, "cert": pem.cert, "cacert": pem.cacert})
        )

        report = await converger.converge(
            _feature(base, tls={"enabled": True, "key": other_pem.key, "cert": other_pem.cert, "cacert": other_pem.cacert})
        )

        assert CONFIG not in report.changed_refs
        assert report.reload is ReloadDecision.FIRE
        assert runtime.reloads == 2

    @pytest.mark.asyncio
    async def test_invalid_tls_applies_nothing(self, base):
        runtime = FakeRuntime()
        feature = _feature(base, tls={"enabled": True, "key_path": "/k"})

        with pytest.raises(ConfigurationError) as exc_info:
            await Converger(runtime).converge(feature)

        assert exc_info.value.code == IdoErrorCode.TLS_MATERIAL_INSUFFICIENT
        assert runtime.calls == []


class TestFailures:
    @pytest.mark.asyncio
    async def test_package_failure_halts_pass(self, base):
        runtime = FakeRuntime(fail_refs={PACKAGE})

        with pytest.raises(PackageInstallError) as exc_info:
            await Converger(runtime).converge(_feature(base, import_schema=True))

        assert exc_info.value.step == PACKAGE
        assert runtime.calls == [PRESEED, PACKAGE]
        assert runtime.commands == []

    @pytest.mark.asyncio
    async def test_check_failure_halts_before_config(self, base):
        runtime = FakeRuntime(check_result=ACCESS_DENIED)

        with pytest.raises(SchemaCheckError):
            await Converger(runtime).converge(_feature(base, import_schema=True))

        assert CONFIG not in runtime.calls
        assert runtime.imports == []
        assert runtime.reloads == 0

    @pytest.mark.asyncio
    async def test_config_failure_redacts_password(self, base):
        runtime = FakeRuntime(fail_refs={CONFIG})

        with pytest.raises(ExternalCommandError) as exc_info:
            await Converger(runtime).converge(_feature(base))

        error = exc_info.value
        assert error.code == IdoErrorCode.APPLY_FAILED
        assert CONFIG in str(error)
        assert PASSWORD not in str(error.to_dict())
        assert TOGGLE not in runtime.calls
        assert runtime.reloads == 0


class TestSecretSafety:
    @pytest.mark.asyncio
    async def test_password_absent_from_logs_and_echoes(self, base, pem):
        runtime = FakeRuntime()
        feature = _feature(
            base,
            import_schema="mariadb",
            tls={"enabled": True, "key": pem.key, "cert": pem.cert, "cacert": pem.cacert},
        )

        with capture_logs() as logs:
            report = await Converger(runtime).converge(feature)

        assert logs
        assert PASSWORD not in str(logs)
        assert "PRIVATE KEY" not in str(logs)
        for command in runtime.commands:
            assert PASSWORD not in command.echo()
            assert PASSWORD not in " ".join(command.argv)
        assert PASSWORD not in str(report.to_dict())

    @pytest.mark.asyncio
    async def test_password_redacted_only_while_converging(self, base):
        runtime = FakeRuntime()
        redactor = SecretValueRedactor()
        seen = []
        runtime.on_command = lambda command: seen.append(redactor(None, "info", {"event": PASSWORD}))

        await Converger(runtime).converge(_feature(base, import_schema=True))

        assert seen and all(PASSWORD not in str(event) for event in seen)
        assert redactor(None, "info", {"event": PASSWORD}) == {"event": PASSWORD}

    @pytest.mark.asyncio
    async def test_password_released_after_failed_pass(self, base):
        runtime = FakeRuntime(check_result=ACCESS_DENIED)

        with pytest.raises(SchemaCheckError):
            await Converger(runtime).converge(_feature(base, import_schema=True))

        assert SecretValueRedactor()(None, "info", {"event": PASSWORD}) == {"event": PASSWORD}
