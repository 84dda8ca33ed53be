# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""IDO MySQL client package and, on Debian, its dbconfig-common pre-seed."""

from typing import Optional

from ..config import Icinga2Base
from ..core.ordering import Catalog
from ..core.resources import FileResource, PackageResource

DEBIAN_PRESEED_PATH = "/etc/dbconfig-common/icinga2-ido-mysql.conf"
# Keeps dbconfig-common from creating or upgrading the database on install
DEBIAN_PRESEED_CONTENT = "dbc_install='false'\ndbc_upgrade='false'\ndbc_remove='false'\n"
DEBIAN_PRESEED_MODE = "0600"


class PackageInstaller:
    def __init__(self, base: Icinga2Base):
        self.base = base

    @property
    def managed(self) -> bool:
        return self.base.manage_packages and bool(self.base.ido_mysql_package_name)

    def declare(self, catalog: Catalog) -> Optional[PackageResource]:
        """Declare the package; returns None when packages are not managed here."""
        if not self.managed:
            return None

        package = PackageResource(name=self.base.ido_mysql_package_name)
        if self.base.os_family == "Debian":
            preseed = catalog.add(
                FileResource(
                    path=DEBIAN_PRESEED_PATH,
                    content=DEBIAN_PRESEED_CONTENT,
                    mode=DEBIAN_PRESEED_MODE,
                    owner="root",
                    group="root",
                )
            )
            catalog.add(package)
            catalog.order(preseed, package)
        else:
            catalog.add(package)
        return package
