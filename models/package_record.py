"""
Package Record model.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TrustVerdict(str, Enum):
    """Provenance verdict for an installed package."""

    TRUSTED = 'trusted'
    SIDELOADED = 'sideloaded'
    UNKNOWN = 'unknown'

    @property
    def is_sideloaded(self) -> bool:
        # Unknown provenance is never trusted.
        return self is not TrustVerdict.TRUSTED


@dataclass
class InstallSourceInfo:
    """Installer reported by the platform for a package."""

    package_id: str
    installer: Optional[str] = None
    error: Optional[str] = None

    @property
    def lookup_failed(self) -> bool:
        return self.error is not None


@dataclass
class InstalledPackage:
    """A package as enumerated by a package source."""

    package_id: str
    is_system: bool = False


@dataclass
class PackageRecord:
    """Represents a package reported to the host."""

    package_id: str
    display_name: Optional[str] = None
    verdict: TrustVerdict = TrustVerdict.UNKNOWN

    def __post_init__(self):
        if not self.package_id:
            raise ValueError("package_id must not be empty")
        if not self.display_name:
            self.display_name = self.package_id
        self.verdict = TrustVerdict(self.verdict)

    def __str__(self) -> str:
        return f"[{self.verdict.value.upper()}] {self.display_name} ({self.package_id})"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'package_id': self.package_id,
            'display_name': self.display_name,
            'verdict': self.verdict.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PackageRecord':
        """Create PackageRecord from a serialized dictionary."""
        return cls(
            package_id=data.get('package_id', ''),
            display_name=data.get('display_name'),
            verdict=data.get('verdict', TrustVerdict.UNKNOWN.value),
        )
