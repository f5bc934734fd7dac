"""
Models package - Data classes for the application.
"""

from models.package_record import (
    InstalledPackage,
    InstallSourceInfo,
    PackageRecord,
    TrustVerdict,
)

__all__ = ['InstalledPackage', 'InstallSourceInfo', 'PackageRecord', 'TrustVerdict']
