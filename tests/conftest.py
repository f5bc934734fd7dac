"""
Pytest configuration and fixtures.
"""

import pytest
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from handlers.base_handler import BasePackageSource, PackageNotFoundError
from models.package_record import InstalledPackage


class FakePackageSource(BasePackageSource):
    """In-memory package source.

    Each package maps to a dict with optional 'installer', 'label', 'system',
    'installer_error' and 'label_error' entries. Errors are raised as given.
    """

    def __init__(self, packages=None, list_error=None):
        super().__init__({})
        self.packages = dict(packages or {})
        self.list_error = list_error
        self.installer_calls = []

    def get_method_name(self) -> str:
        return "fake"

    def _get(self, package_id):
        if package_id not in self.packages:
            raise PackageNotFoundError(package_id)
        return self.packages[package_id]

    def get_installer_package(self, package_id):
        self.installer_calls.append(package_id)
        info = self._get(package_id)
        if info.get('installer_error'):
            raise info['installer_error']
        return info.get('installer')

    def get_application_label(self, package_id):
        info = self._get(package_id)
        if info.get('label_error'):
            raise info['label_error']
        return info.get('label')

    def list_installed_packages(self):
        if self.list_error:
            raise self.list_error
        return [
            InstalledPackage(package_id=package_id, is_system=info.get('system', False))
            for package_id, info in self.packages.items()
        ]


@pytest.fixture
def make_source():
    """Factory for FakePackageSource instances."""
    return FakePackageSource


@pytest.fixture
def sample_packages():
    """A device with trusted, sideloaded and system packages."""
    return {
        'com.acme.app': {'installer': 'org.fdroid.fdroid', 'label': 'Acme'},
        'com.store.app': {'installer': 'com.android.vending', 'label': 'Store App'},
        'com.adb.push': {'installer': None, 'label': 'Pushed'},
        'com.android.settings': {'installer': None, 'label': 'Settings', 'system': True},
    }


@pytest.fixture
def temp_state_file(tmp_path):
    """Path to a not yet created state file."""
    return str(tmp_path / 'state' / 'sideguard.json')


@pytest.fixture
def snapshot_file(tmp_path):
    """YAML inventory for the snapshot package source."""
    path = tmp_path / 'inventory.yaml'
    path.write_text(
        "packages:\n"
        "  com.acme.app:\n"
        "    installer: org.fdroid.fdroid\n"
        "    label: Acme\n"
        "  com.store.app:\n"
        "    installer: com.android.vending\n"
        "    label: Store App\n"
        "  com.android.settings:\n"
        "    label: Settings\n"
        "    system: true\n",
        encoding='utf-8'
    )
    return str(path)
