"""
Snapshot handler for offline audits.
Reads package metadata from a YAML inventory captured from a device.
"""

import yaml
from typing import Optional, Dict, Any, List

from .base_handler import BasePackageSource, PackageNotFoundError, PackageSourceError
from models.package_record import InstalledPackage


class SnapshotPackageSource(BasePackageSource):
    """Package source backed by a YAML inventory file.

    The file is expected to look like::

        packages:
          com.example.app:
            installer: com.android.vending
            label: Example
            system: false
    """

    def __init__(self, config: Dict[str, Any], settings: Dict[str, Any] = None):
        super().__init__(config, settings)
        self.path = config.get('path')

    def get_method_name(self) -> str:
        return "snapshot"

    def _load_packages(self) -> Dict[str, Dict[str, Any]]:
        """Load the inventory; every call reads the file again."""
        if not self.path:
            raise PackageSourceError("No snapshot path configured")
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PackageSourceError(f"Could not read snapshot {self.path}: {e}") from e

        packages = data.get('packages') if isinstance(data, dict) else None
        if not isinstance(packages, dict):
            raise PackageSourceError(f"Snapshot {self.path} has no 'packages' mapping")
        return packages

    def _get_package(self, package_id: str) -> Dict[str, Any]:
        packages = self._load_packages()
        if package_id not in packages:
            raise PackageNotFoundError(package_id)
        return packages[package_id] or {}

    def get_installer_package(self, package_id: str) -> Optional[str]:
        return self._get_package(package_id).get('installer') or None

    def get_application_label(self, package_id: str) -> Optional[str]:
        return self._get_package(package_id).get('label') or None

    def list_installed_packages(self) -> List[InstalledPackage]:
        return [
            InstalledPackage(package_id=package_id, is_system=bool((info or {}).get('system', False)))
            for package_id, info in self._load_packages().items()
        ]
