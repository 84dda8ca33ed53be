"""Tests for the client package declaration."""
from ido_mysql.config import Icinga2Base
from ido_mysql.core.ordering import Catalog
from ido_mysql.core.resources import FileResource, PackageResource
from ido_mysql.services.package_installer import (
    DEBIAN_PRESEED_CONTENT,
    DEBIAN_PRESEED_PATH,
    PackageInstaller,
)


class TestPackageInstaller:
    def test_debian_preseed_precedes_package(self, base):
        catalog = Catalog("ido-mysql")
        package = PackageInstaller(base).declare(catalog)

        preseed = catalog.get(f"File[{DEBIAN_PRESEED_PATH}]")
        assert isinstance(preseed, FileResource)
        assert preseed.mode == "0600"
        assert preseed.content == "dbc_install='false'\ndbc_upgrade='false'\ndbc_remove='false'\n"
        assert preseed.content == DEBIAN_PRESEED_CONTENT
        assert package.ref == "Package[icinga2-ido-mysql]"
        assert catalog.graph.precedes(preseed.ref, package.ref)
        assert [r.ref for r in catalog.ordered()] == [preseed.ref, package.ref]

    def test_redhat_has_no_preseed(self, redhat_base):
        catalog = Catalog("ido-mysql")
        package = PackageInstaller(redhat_base).declare(catalog)

        assert isinstance(package, PackageResource)
        assert len(catalog) == 1

    def test_unmanaged_packages_are_a_noop(self):
        base = Icinga2Base.for_os_family("Debian", manage_packages=False)
        catalog = Catalog("ido-mysql")

        assert PackageInstaller(base).declare(catalog) is None
        assert len(catalog) == 0

    def test_platform_without_separate_package(self):
        base = Icinga2Base.for_os_family("FreeBSD")
        catalog = Catalog("ido-mysql")

        assert PackageInstaller(base).declare(catalog) is None
        assert len(catalog) == 0
