# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Rendered features-available/ido-mysql.conf."""

from typing import Any

from ..config import Icinga2Base
from ..core.ordering import Catalog
from ..core.render import render_feature_config
from ..core.resources import FileResource

FEATURE_NAME = "ido-mysql"
LIBRARY = "db_ido_mysql"
OBJECT_TYPE = "IdoMysqlConnection"
# The file holds the database password
CONFIG_MODE = "0640"


class FeatureConfigWriter:
    def __init__(self, base: Icinga2Base):
        self.base = base

    @property
    def path(self) -> str:
        return f"{self.base.features_available_dir}/{FEATURE_NAME}.conf"

    def render(self, attributes: dict[str, Any]) -> str:
        return render_feature_config(LIBRARY, OBJECT_TYPE, FEATURE_NAME, attributes)

    def declare(self, catalog: Catalog, attributes: dict[str, Any], notify: bool) -> FileResource:
        return catalog.add(
            FileResource(
                path=self.path,
                content=self.render(attributes),
                mode=CONFIG_MODE,
                owner=self.base.user,
                group=self.base.group,
                sensitive=True,
                notify_reload=notify,
            )
        )
