"""Tests for feature compilation."""
import pytest

from ido_mysql.core.resources import CommandResource, LinkResource, TLSClientResource
from ido_mysql.errors import ConfigurationError, IdoErrorCode, PreconditionError
from ido_mysql.feature import IdoMysqlFeature
from ido_mysql.schemas import IdoMysqlParams

from conftest import PASSWORD

PACKAGE = "Package[icinga2-ido-mysql]"
SCHEMA = "Exec[idomysql-import-schema]"
CONFIG = "File[/etc/icinga2/features-available/ido-mysql.conf]"
TOGGLE = "Link[/etc/icinga2/features-enabled/ido-mysql.conf]"
PRESEED = "File[/etc/dbconfig-common/icinga2-ido-mysql.conf]"
TLS_CLIENT = "TlsClient[IdoMysqlConnection_ido-mysql]"


def _feature(base, connection_input, **params) -> IdoMysqlFeature:
    return IdoMysqlFeature(base, {"connection": connection_input, **params})


class TestPreconditions:
    def test_base_required(self, connection_input):
        with pytest.raises(PreconditionError) as exc_info:
            IdoMysqlFeature(None, {"connection": connection_input})

        assert exc_info.value.code == IdoErrorCode.BASE_NOT_DECLARED
        assert exc_info.value.step == "precondition"

    def test_invalid_params_rejected(self, base, connection_input):
        with pytest.raises(ConfigurationError) as exc_info:
            _feature(base, connection_input, import_schema="postgres")

        assert exc_info.value.code == IdoErrorCode.UNSUPPORTED_DIALECT

    def test_accepts_model(self, base, connection_input):
        params = IdoMysqlParams.from_input({"connection": connection_input})
        assert IdoMysqlFeature(base, params).params is params


class TestCompile:
    def test_default_catalog(self, base, connection_input):
        catalog = _feature(base, connection_input).compile()

        assert [r.ref for r in catalog.ordered()] == [PRESEED, PACKAGE, CONFIG, TOGGLE]

    def test_full_catalog_ordering(self, base, connection_input, pem):
        feature = _feature(
            base,
            connection_input,
            import_schema="mariadb",
            tls={"enabled": True, "key": pem.key, "cert": pem.cert, "cacert": pem.cacert},
        )
        catalog = feature.compile()
        graph = catalog.graph
        order = [r.ref for r in catalog.ordered()]

        assert graph.precedes(PRESEED, PACKAGE)
        assert graph.precedes(PACKAGE, SCHEMA)
        assert graph.precedes(PACKAGE, CONFIG)
        assert graph.precedes(SCHEMA, CONFIG)
        assert graph.precedes(TLS_CLIENT, CONFIG)
        assert graph.precedes(CONFIG, TOGGLE)
        assert order.index(PACKAGE) < order.index(SCHEMA) < order.index(CONFIG) < order.index(TOGGLE)
        assert order.index(TLS_CLIENT) < order.index(SCHEMA)
        assert order[-1] == TOGGLE

    def test_tls_paths_flow_into_attributes_and_schema_commands(self, base, connection_input, pem):
        feature = _feature(
            base,
            connection_input,
            import_schema=True,
            tls={"enabled": True, "key": pem.key, "cert": pem.cert, "cacert": pem.cacert},
        )
        catalog = feature.compile()
        bundle = feature.bundle

        assert feature.attributes["ssl_key"] == bundle.key_path
        assert feature.attributes["ssl_cert"] == bundle.cert_path
        assert feature.attributes["ssl_ca"] == bundle.cacert_path
        client = catalog.get(TLS_CLIENT)
        assert isinstance(client, TLSClientResource)
        assert client.bundle.identity == bundle.identity
        assert client.notify_reload
        schema = catalog.get(SCHEMA)
        assert isinstance(schema, CommandResource)
        assert f"--ssl-key={bundle.key_path}" in schema.unless.argv

    def test_tls_disabled_has_no_tls_keys(self, base, connection_input):
        feature = _feature(base, connection_input)
        feature.compile()

        assert not any(key.startswith("ssl_") or key == "enable_ssl" for key in feature.attributes)
        assert feature.bundle is None

    def test_import_true_means_mysql(self, base, connection_input):
        feature = _feature(base, connection_input, import_schema=True)
        feature.compile()
        assert feature.schema_importer.check_command.argv[0] == "mysql"

    def test_invalid_tls_fails_before_catalog(self, base, connection_input, pem):
        feature = _feature(
            base,
            connection_input,
            tls={"enabled": True, "key_path": "/k", "key": pem.key, "cert": pem.cert, "cacert": pem.cacert},
        )
        with pytest.raises(ConfigurationError) as exc_info:
            feature.compile()

        assert exc_info.value.code == IdoErrorCode.TLS_MATERIAL_AMBIGUOUS
        assert feature.attributes is None

    def test_absent_removes_link_without_notify(self, base, connection_input):
        feature = _feature(base, connection_input, ensure="absent")
        catalog = feature.compile()

        toggle = catalog.get(TOGGLE)
        assert isinstance(toggle, LinkResource)
        assert not toggle.present
        assert not any(r.notify_reload for r in catalog)

    def test_compile_is_deterministic(self, base, connection_input):
        first = _feature(base, dict(connection_input)).compile()
        second = _feature(base, dict(connection_input)).compile()

        assert first.get(CONFIG).content == second.get(CONFIG).content
        assert PASSWORD in first.get(CONFIG).content
