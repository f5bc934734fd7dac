"""
Provenance Classifier - Decides whether a package came from the trusted installer.
"""

import logging

from handlers.base_handler import BasePackageSource
from models.package_record import InstallSourceInfo, TrustVerdict


PLAY_STORE_INSTALLER = 'com.android.vending'


class ProvenanceClassifier:
    """Classifies packages by their installing channel.

    The classifier is fail-closed: a package is TRUSTED only when the platform
    reports exactly the configured trusted installer. A missing installer or a
    failed lookup yields SIDELOADED. Every call queries the source again.
    """

    def __init__(self, source: BasePackageSource, trusted_installer: str = PLAY_STORE_INSTALLER):
        """
        Initialize the classifier.

        Args:
            source: Package metadata source to query
            trusted_installer: The one installer identifier treated as trusted
        """
        if not trusted_installer:
            raise ValueError("trusted_installer must not be empty")
        self.source = source
        self.trusted_installer = trusted_installer
        self.logger = logging.getLogger('ProvenanceClassifier')

    def inspect(self, package_id: str) -> InstallSourceInfo:
        """
        Look up the installer reported for a package.

        Lookup errors are captured in the result, never raised.
        """
        try:
            installer = self.source.get_installer_package(package_id)
        except Exception as e:
            self.logger.error(f"Error checking installer package for {package_id}: {e}")
            return InstallSourceInfo(package_id=package_id, error=str(e) or type(e).__name__)

        self.logger.debug(f"Installer package for {package_id} is: {installer}")
        return InstallSourceInfo(package_id=package_id, installer=installer)

    def verdict_for(self, info: InstallSourceInfo) -> TrustVerdict:
        """Apply the trust policy to an install source lookup."""
        if info.lookup_failed or info.installer is None:
            return TrustVerdict.SIDELOADED
        if info.installer != self.trusted_installer:
            return TrustVerdict.SIDELOADED
        return TrustVerdict.TRUSTED

    def classify(self, package_id: str) -> TrustVerdict:
        """
        Classify a package.

        Args:
            package_id: Package identifier

        Returns:
            TrustVerdict.TRUSTED or TrustVerdict.SIDELOADED
        """
        return self.verdict_for(self.inspect(package_id))
