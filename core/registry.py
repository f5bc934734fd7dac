"""
Newly-Installed Registry - Tracks packages awaiting user notification.
"""

import logging
from threading import Lock
from typing import List, Optional

from core.classifier import ProvenanceClassifier
from core.state_manager import SetStore
from handlers.base_handler import BasePackageSource
from models.package_record import PackageRecord


NEW_APPS_KEY = 'newly_installed_apps'


class NewAppsRegistry:
    """Persisted set of package identifiers flagged as newly installed.

    Each identifier is either absent or pending. `add` moves one identifier to
    pending and `clear` moves every identifier back to absent.
    """

    def __init__(
        self,
        store: SetStore,
        classifier: ProvenanceClassifier,
        source: BasePackageSource = None,
        key: str = NEW_APPS_KEY
    ):
        """
        Initialize the registry.

        Args:
            store: Store holding the persisted set
            classifier: Classifier used to filter reads
            source: Package source for labels and enumeration, defaults to
                the classifier's source
            key: Key the set is stored under
        """
        self.store = store
        self.classifier = classifier
        self.source = source or classifier.source
        self.key = key
        self.logger = logging.getLogger('NewAppsRegistry')
        # Serializes read-modify-write of the set within this process
        self._lock = Lock()

    def add(self, package_id: str) -> bool:
        """
        Add a package to the pending set. Repeated adds are no-ops.

        Returns:
            True if the set was durably written
        """
        if not package_id:
            self.logger.error("Refusing to add an empty package identifier")
            return False

        with self._lock:
            try:
                packages = self.store.get_set(self.key)
            except Exception as e:
                self.logger.error(f"Error reading newly installed apps before adding {package_id}: {e}")
                return False

            packages.add(package_id)
            success = self.store.put_set(self.key, packages)
        self.logger.info(
            f"Stored new app: {package_id}, total new apps: {len(packages)}, save success: {success}"
        )
        return success

    def _resolve_display_name(self, package_id: str) -> Optional[str]:
        label = self.source.get_application_label(package_id)
        return label.strip() if label and label.strip() else None

    def read_and_filter(self) -> List[PackageRecord]:
        """
        Read the pending set and return the sideloaded packages in it.

        Trusted packages are left out. A package whose label cannot be
        resolved is still reported, named by its identifier.

        Raises:
            StateError: if the pending set cannot be read
        """
        packages = self.store.get_set(self.key)
        self.logger.debug(f"Retrieved {len(packages)} newly installed packages")

        records = []
        for package_id in packages:
            if not isinstance(package_id, str) or not package_id:
                self.logger.warning(f"Ignoring malformed stored identifier: {package_id!r}")
                continue

            verdict = self.classifier.classify(package_id)
            if not verdict.is_sideloaded:
                self.logger.debug(f"Skipping trusted install: {package_id}")
                continue

            try:
                display_name = self._resolve_display_name(package_id)
            except Exception as e:
                self.logger.warning(f"Error getting label for {package_id}, using identifier: {e}")
                display_name = None

            record = PackageRecord(package_id=package_id, display_name=display_name, verdict=verdict)
            records.append(record)
            self.logger.debug(f"Added to result: {record}")

        self.logger.info(f"Returning {len(records)} of {len(packages)} pending packages")
        return records

    def clear(self) -> bool:
        """
        Remove every pending package in a single commit.

        Returns:
            True if the removal was durably written
        """
        with self._lock:
            success = self.store.remove_set(self.key)
        self.logger.info(f"Cleared newly installed apps, success: {success}")
        return success

    def list_all_sideloaded(self) -> List[PackageRecord]:
        """
        Scan every installed non-system package for sideloaded ones.

        Unlike read_and_filter, packages whose lookup fails are logged and
        skipped, since they were never explicitly tracked.

        Raises:
            PackageSourceError: if the installed packages cannot be enumerated
        """
        installed = self.source.list_installed_packages()

        records = []
        processed = 0
        for package in installed:
            # System packages are never reported
            if package.is_system:
                continue

            processed += 1
            if processed % 10 == 0:
                self.logger.debug(f"Processed {processed} apps")

            try:
                info = self.classifier.inspect(package.package_id)
                if info.lookup_failed:
                    self.logger.warning(f"Skipping {package.package_id}: {info.error}")
                    continue
                verdict = self.classifier.verdict_for(info)
                if not verdict.is_sideloaded:
                    continue
                display_name = self._resolve_display_name(package.package_id)
            except Exception as e:
                self.logger.error(f"Error getting info for package {package.package_id}: {e}")
                continue

            records.append(PackageRecord(
                package_id=package.package_id,
                display_name=display_name,
                verdict=verdict
            ))

        self.logger.info(f"Found {len(records)} sideloaded apps among {processed} non-system packages")
        return records
