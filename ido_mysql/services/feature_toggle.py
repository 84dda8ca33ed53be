# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""features-enabled/ido-mysql.conf link."""

from ..config import Icinga2Base
from ..core.ordering import Catalog
from ..core.resources import LinkResource
from .feature_config_writer import FEATURE_NAME


class FeatureToggle:
    """Enables the feature with a relative symlink into features-available."""

    def __init__(self, base: Icinga2Base):
        self.base = base

    @property
    def path(self) -> str:
        return f"{self.base.features_enabled_dir}/{FEATURE_NAME}.conf"

    @property
    def target(self) -> str:
        return f"../features-available/{FEATURE_NAME}.conf"

    def declare(self, catalog: Catalog, enabled: bool) -> LinkResource:
        # Enabling notifies; removing the link never does
        return catalog.add(
            LinkResource(path=self.path, target=self.target, present=enabled, notify_reload=enabled)
        )
