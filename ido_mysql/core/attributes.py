# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Assembly of the IdoMysqlConnection attributes.

Base attributes come from the connection and instance settings; the TLS
overlay is merged over them. Unset values are dropped before rendering so
they never appear as empty or null tokens.
"""

from typing import TYPE_CHECKING, Any, Optional, Union

from ..errors import RenderError

if TYPE_CHECKING:
    from ..schemas.feature import IdoMysqlParams
    from ..schemas.tls import TLSBundle


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class Constant(str):
    """A bare DSL token such as DbCatConfig, rendered without quotes."""


class Duration(str):
    """A DSL duration literal such as 48h, rendered without quotes."""


TLS_KEYS = ("enable_ssl", "ssl_key", "ssl_cert", "ssl_ca", "ssl_capath", "ssl_cipher")


def opt(value: Any) -> Any:
    """Map None to UNSET."""
    return UNSET if value is None else value


def _duration(value: Union[int, str, None]) -> Any:
    if value is None:
        return UNSET
    return value if isinstance(value, int) else Duration(value)


def omit_unset(attributes: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in attributes.items() if value is not UNSET}


class AttributeAssembler:
    """Builds the ordered attribute mapping of the connection object."""

    def base_attributes(self, params: "IdoMysqlParams") -> dict[str, Any]:
        connection = params.connection
        cleanup = UNSET
        if params.cleanup:
            cleanup = {key: _duration(value) for key, value in params.cleanup.items()}
        categories = UNSET
        if params.categories is not None:
            categories = [Constant(name) for name in params.categories]

        return {
            "host": connection.host,
            "port": opt(connection.port),
            "socket_path": opt(connection.socket_path),
            "user": connection.user,
            "password": connection.password,
            "database": connection.database,
            "table_prefix": opt(connection.table_prefix),
            "instance_name": opt(params.instance_name),
            "instance_description": opt(params.instance_description),
            "enable_ha": opt(params.enable_ha),
            "failover_timeout": _duration(params.failover_timeout),
            "cleanup": cleanup,
            "categories": categories,
        }

    def tls_overlay(self, bundle: Optional["TLSBundle"]) -> dict[str, Any]:
        if bundle is None:
            return {}
        return {
            "enable_ssl": True,
            "ssl_key": bundle.key_path,
            "ssl_cert": bundle.cert_path,
            "ssl_ca": bundle.cacert_path,
            "ssl_capath": opt(bundle.capath),
            "ssl_cipher": opt(bundle.cipher),
        }

    def merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Merge overlay over base. Only TLS keys may be overlaid."""
        foreign = [key for key in overlay if key not in TLS_KEYS]
        if foreign:
            raise RenderError(
                f"TLS overlay carries non-TLS attributes: {', '.join(foreign)}",
                step="attributes",
                details={"keys": foreign},
            )
        merged = dict(base)
        merged.update(overlay)
        return merged

    def assemble(self, params: "IdoMysqlParams", bundle: Optional["TLSBundle"] = None) -> dict[str, Any]:
        return omit_unset(self.merge(self.base_attributes(params), self.tls_overlay(bundle)))
