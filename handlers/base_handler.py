"""
Abstract base handler for all package metadata sources.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List
import logging

from models.package_record import InstalledPackage


class PackageSourceError(Exception):
    """Raised when the platform package metadata cannot be queried."""


class PackageNotFoundError(PackageSourceError):
    """Raised when a package is not known to the platform."""

    def __init__(self, package_id: str):
        super().__init__(f"Package not found: {package_id}")
        self.package_id = package_id


class BasePackageSource(ABC):
    """Abstract base class for all package metadata sources."""

    def __init__(self, config: Dict[str, Any], settings: Dict[str, Any] = None):
        """
        Initialize source with its configuration.

        Args:
            config: Source configuration dictionary
            settings: Full application settings
        """
        self.config = config
        self.settings = settings or {}
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_installer_package(self, package_id: str) -> Optional[str]:
        """
        Get the installing-channel identifier for a package.

        Args:
            package_id: Package identifier

        Returns:
            Installer package name, or None if the platform reports none

        Raises:
            PackageNotFoundError: if the package is not installed
            PackageSourceError: if the query fails
        """
        pass

    @abstractmethod
    def get_application_label(self, package_id: str) -> Optional[str]:
        """
        Get the human-readable label for a package.

        Returns:
            Label string, or None if the platform cannot resolve one

        Raises:
            PackageNotFoundError: if the package is not installed
            PackageSourceError: if the query fails
        """
        pass

    @abstractmethod
    def list_installed_packages(self) -> List[InstalledPackage]:
        """
        Enumerate every package installed on the device.

        Raises:
            PackageSourceError: if the enumeration fails
        """
        pass

    @abstractmethod
    def get_method_name(self) -> str:
        """
        Get the name of the metadata source method.

        Returns:
            String identifier for this method
        """
        pass

    def handle_error(self, subject: str, exception: Exception) -> None:
        """
        Log errors during a metadata query.

        Args:
            subject: Package or listing being queried
            exception: The exception that occurred
        """
        self.logger.error(
            f"Error querying {self.get_method_name()} metadata for {subject}: "
            f"{type(exception).__name__}: {str(exception)}"
        )
