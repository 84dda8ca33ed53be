# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Feature components: each declares its resources into a catalog."""

from .credential_store import CredentialStore, InMemoryCredentialStore
from .feature_config_writer import FeatureConfigWriter
from .feature_toggle import FeatureToggle
from .package_installer import PackageInstaller
from .schema_importer import SchemaImporter, SchemaImportState
from .tls_provisioner import TLS_IDENTITY, TLSProvisioner

__all__ = [
    "CredentialStore",
    "InMemoryCredentialStore",
    "FeatureConfigWriter",
    "FeatureToggle",
    "PackageInstaller",
    "SchemaImporter",
    "SchemaImportState",
    "TLS_IDENTITY",
    "TLSProvisioner",
]
