# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
The ido-mysql feature: composes its components into one resource catalog.

Compiling is pure. Every configuration problem (ambiguous TLS material,
unsupported dialect, ordering cycle) surfaces here, before the catalog is
handed to a runtime.

Ordering:
    preseed -> package -> schema-import -> feature-write -> feature-toggle
    package -> feature-write
    TLS files -> TLS client -> schema-import, feature-write
"""
from typing import Any, Optional, Union

from .config import Icinga2Base
from .core.attributes import AttributeAssembler
from .core.ordering import Catalog
from .errors import PreconditionError
from .logging_config import get_logger
from .schemas.feature import IdoMysqlParams
from .schemas.tls import TLSBundle
from .services.feature_config_writer import FEATURE_NAME, FeatureConfigWriter
from .services.feature_toggle import FeatureToggle
from .services.package_installer import PackageInstaller
from .services.schema_importer import SchemaImporter
from .services.tls_provisioner import TLSProvisioner

logger = get_logger(__name__)


class IdoMysqlFeature:
    """Declaration of the ido-mysql feature on top of a base icinga2 installation."""

    name = FEATURE_NAME

    def __init__(
        self,
        base: Optional[Icinga2Base],
        params: Union[IdoMysqlParams, dict[str, Any]],
    ):
        if base is None:
            raise PreconditionError(
                "The base icinga2 installation must be declared before the ido-mysql feature",
                step="precondition",
            )
        if not isinstance(params, IdoMysqlParams):
            params = IdoMysqlParams.from_input(params)

        self.base = base
        self.params = params

        self.assembler = AttributeAssembler()
        self.tls = TLSProvisioner(base)
        self.packages = PackageInstaller(base)
        self.config_writer = FeatureConfigWriter(base)
        self.toggle = FeatureToggle(base)

        self.bundle: Optional[TLSBundle] = None
        self.attributes: Optional[dict[str, Any]] = None
        self.schema_importer: Optional[SchemaImporter] = None
        self.toggle_ref: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.params.enabled

    @property
    def password(self) -> str:
        return self.params.connection.password.get_secret_value()

    def compile(self) -> Catalog:
        """Build the catalog and validate its ordering.

        Raises:
            ConfigurationError: invalid TLS material or an ordering cycle
            RenderError: attributes that cannot be rendered
        """
        params = self.params
        enabled = self.enabled

        bundle = self.tls.resolve(params.tls)
        attributes = self.assembler.assemble(params, bundle)
        importer = SchemaImporter(
            params.import_schema.dialect,
            params.connection,
            self.base.ido_mysql_schema_path,
            bundle,
        )

        catalog = Catalog(self.name)
        package = self.packages.declare(catalog)
        tls_client = self.tls.declare(catalog, bundle, notify=enabled) if bundle else None
        schema = importer.declare(catalog)
        config = self.config_writer.declare(catalog, attributes, notify=enabled)
        toggle = self.toggle.declare(catalog, enabled)

        if package is not None:
            catalog.order(package, config)
            if schema is not None:
                catalog.order(package, schema)
        if tls_client is not None:
            catalog.order(tls_client, config)
            if schema is not None:
                catalog.order(tls_client, schema)
        if schema is not None:
            catalog.order(schema, config)
        catalog.order(config, toggle)

        # Raises on a cycle
        order = catalog.graph.topological_order()

        self.bundle = bundle
        self.attributes = attributes
        self.schema_importer = importer
        self.toggle_ref = toggle.ref
        logger.debug(
            "Feature compiled",
            feature=self.name,
            ensure=params.ensure.value,
            resources=order,
            tls=bundle is not None,
            import_schema=params.import_schema.value,
        )
        return catalog
