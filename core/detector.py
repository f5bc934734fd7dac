"""
Detector - Host-facing entry point for new app detection.
"""

import csv
import os
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any, Type

from core.classifier import ProvenanceClassifier
from core.registry import NewAppsRegistry
from core.state_manager import SetStore, StateManager
from handlers.base_handler import BasePackageSource
from handlers.adb_handler import ADBPackageSource
from handlers.api_handler import APIPackageSource
from handlers.snapshot_handler import SnapshotPackageSource
from models.package_record import InstallSourceInfo, PackageRecord
from utils.settings import load_settings


class NewAppsDetector:
    """Wires settings, package source, classifier and registry together."""

    # Map method names to package source classes
    SOURCE_MAP: Dict[str, Type[BasePackageSource]] = {
        'adb': ADBPackageSource,
        'api': APIPackageSource,
        'snapshot': SnapshotPackageSource,
    }

    def __init__(
        self,
        settings_path: str = None,
        state_file: str = None,
        source: BasePackageSource = None,
        store: SetStore = None,
        settings: Dict[str, Any] = None
    ):
        """
        Initialize the detector.

        Args:
            settings_path: Path to settings.yaml
            state_file: Path to state JSON file, overrides settings
            source: Package source, built from settings when omitted
            store: Set store, a StateManager when omitted
            settings: Already loaded settings, skips reading settings_path
        """
        self.settings = settings if settings is not None else load_settings(settings_path)
        self.logger = logging.getLogger('NewAppsDetector')

        registry_settings = self.settings.get('registry', {})
        if store is None:
            store = StateManager(
                state_file or registry_settings.get('state_file'),
                namespace=registry_settings.get('namespace', 'sideguard')
            )

        self.source = source or self._build_source()
        self.classifier = ProvenanceClassifier(
            self.source,
            trusted_installer=self.settings.get('classifier', {}).get('trusted_installer', 'com.android.vending')
        )
        self.registry = NewAppsRegistry(
            store,
            self.classifier,
            key=registry_settings.get('key', 'newly_installed_apps')
        )
        self.logger.debug(
            f"NewAppsDetector initialized with {self.source.get_method_name()} source, "
            f"trusting {self.classifier.trusted_installer}"
        )

    def _build_source(self) -> BasePackageSource:
        source_config = self.settings.get('source', {})
        method = source_config.get('method', 'adb')

        source_class = self.SOURCE_MAP.get(method)
        if not source_class:
            raise ValueError(f"Unknown package source method '{method}'")

        return source_class(source_config, self.settings)

    def manually_add_package(self, package_id: str) -> bool:
        """Add a package to the pending registry without classifying it."""
        self.logger.info(f"Adding package manually: {package_id}")
        return self.registry.add(package_id)

    def on_package_added(self, package_id: str) -> bool:
        """
        Handle a freshly installed package reported by an install observer.

        Only sideloaded packages are registered.

        Returns:
            True if the package was registered
        """
        self.logger.info(f"New app installation detected: {package_id}")
        if not package_id:
            return False

        verdict = self.classifier.classify(package_id)
        if not verdict.is_sideloaded:
            self.logger.info(f"App is from the trusted installer, ignoring: {package_id}")
            return False

        self.logger.info(f"App is sideloaded: {package_id}")
        return self.registry.add(package_id)

    def get_newly_installed_apps(self) -> List[PackageRecord]:
        """Get pending sideloaded installs."""
        return self.registry.read_and_filter()

    def clear_newly_installed_apps(self) -> bool:
        """Clear the pending registry once the host has consumed it."""
        return self.registry.clear()

    def get_all_sideloaded_apps(self) -> List[PackageRecord]:
        """Audit every installed non-system package."""
        return self.registry.list_all_sideloaded()

    def check_package(self, package_id: str) -> Dict[str, Any]:
        """
        Report the installer lookup and verdict for one package.

        Returns:
            Dictionary with package_id, installer, error and verdict
        """
        info: InstallSourceInfo = self.classifier.inspect(package_id)
        verdict = self.classifier.verdict_for(info)
        return {
            'package_id': info.package_id,
            'installer': info.installer,
            'error': info.error,
            'verdict': verdict.value,
        }

    def export_to_csv(
        self,
        records: List[PackageRecord],
        output_path: Optional[str] = None
    ) -> str:
        """
        Export package records to a CSV file.

        Args:
            records: List of PackageRecord objects
            output_path: Output CSV file path

        Returns:
            Path to the created CSV file
        """
        if output_path is None:
            base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
            output_path = os.path.join(base_dir, 'output.csv')

        os.makedirs(os.path.dirname(output_path) if os.path.dirname(output_path) else '.', exist_ok=True)

        fieldnames = ['package_id', 'display_name', 'verdict', 'check_time']
        check_time = datetime.now().isoformat()

        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()

            for record in records:
                writer.writerow({**record.to_dict(), 'check_time': check_time})

        self.logger.info(f"Results exported to: {output_path}")
        return output_path
