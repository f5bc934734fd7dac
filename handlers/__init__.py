"""
Handlers package - Contains all package metadata source implementations.
"""

from handlers.base_handler import BasePackageSource, PackageNotFoundError, PackageSourceError
from handlers.adb_handler import ADBPackageSource
from handlers.api_handler import APIPackageSource
from handlers.snapshot_handler import SnapshotPackageSource

__all__ = [
    'BasePackageSource',
    'PackageNotFoundError',
    'PackageSourceError',
    'ADBPackageSource',
    'APIPackageSource',
    'SnapshotPackageSource'
]
