"""
ADB handler for querying package metadata from a connected Android device.
Runs `pm` through `adb shell` and parses its line-oriented output.
"""

import re
import shlex
import subprocess
from typing import Optional, Dict, Any, List

from .base_handler import BasePackageSource, PackageNotFoundError, PackageSourceError
from models.package_record import InstalledPackage


INSTALLER_LINE = re.compile(r'^package:(?P<package>\S+)\s+installer=(?P<installer>\S*)')
LABEL_LINE = re.compile(r"^application-label:'(?P<label>.*)'\s*$")


class ADBPackageSource(BasePackageSource):
    """Package source backed by `adb shell pm`."""

    def __init__(self, config: Dict[str, Any], settings: Dict[str, Any] = None):
        super().__init__(config, settings)
        adb_settings = self.settings.get('adb', {})
        self.adb_path = config.get('adb_path', adb_settings.get('path', 'adb'))
        self.serial = config.get('serial', adb_settings.get('serial'))
        self.aapt_path = config.get('aapt_path', adb_settings.get('aapt_path'))
        self.timeout = adb_settings.get('timeout', 30)

    def get_method_name(self) -> str:
        return "adb"

    def _run_shell(self, *args: str) -> subprocess.CompletedProcess:
        """Run a command on the device shell and return the completed process."""
        command = shlex.split(self.adb_path)
        if self.serial:
            command += ['-s', self.serial]
        # adb shell joins its arguments into one device shell command line
        command += ['shell', *(shlex.quote(arg) for arg in args)]

        self.logger.debug(f"Executing: {' '.join(command)}")
        try:
            return subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            error = PackageSourceError(f"Command timed out after {self.timeout}s: {' '.join(args)}")
            self.handle_error(' '.join(args), e)
            raise error from e
        except OSError as e:
            error = PackageSourceError(f"Could not execute {self.adb_path}: {e}")
            self.handle_error(' '.join(args), e)
            raise error from e

    def _list_packages(self, *flags: str) -> List[str]:
        result = self._run_shell('pm', 'list', 'packages', *flags)
        if result.returncode != 0:
            error = PackageSourceError(
                f"pm list packages failed with code {result.returncode}: {result.stderr.strip()}"
            )
            self.handle_error(' '.join(flags) or 'package listing', error)
            raise error
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def get_installer_package(self, package_id: str) -> Optional[str]:
        """
        Look up the installer with `pm list packages -i`.

        The filter argument of `pm list packages` matches substrings, so the
        output is scanned for an exact package match.
        """
        for line in self._list_packages('-i', package_id):
            match = INSTALLER_LINE.match(line)
            if not match or match.group('package') != package_id:
                continue
            installer = match.group('installer')
            if not installer or installer == 'null':
                return None
            return installer

        raise PackageNotFoundError(package_id)

    def get_application_label(self, package_id: str) -> Optional[str]:
        """
        Resolve the label from the APK badging.

        Returns None when no aapt binary is configured for the device or the
        badging carries no label.
        """
        result = self._run_shell('pm', 'path', package_id)
        if result.returncode != 0:
            error = PackageSourceError(
                f"pm path failed with code {result.returncode}: {result.stderr.strip()}"
            )
            self.handle_error(package_id, error)
            raise error

        apk_paths = [
            line.split(':', 1)[1].strip()
            for line in result.stdout.splitlines()
            if line.startswith('package:')
        ]
        if not apk_paths:
            raise PackageNotFoundError(package_id)

        if not self.aapt_path:
            return None

        # Split APKs list base.apk first
        badging = self._run_shell(self.aapt_path, 'dump', 'badging', apk_paths[0])
        if badging.returncode != 0:
            self.logger.warning(
                f"aapt failed for {package_id} with code {badging.returncode}: {badging.stderr.strip()}"
            )
            return None

        for line in badging.stdout.splitlines():
            match = LABEL_LINE.match(line.strip())
            if match and match.group('label'):
                return match.group('label')

        return None

    def list_installed_packages(self) -> List[InstalledPackage]:
        """Enumerate packages with `pm list packages`, flagging the system set."""
        system_packages = {
            line.split(':', 1)[1] for line in self._list_packages('-s')
            if line.startswith('package:')
        }
        packages = []
        for line in self._list_packages():
            if not line.startswith('package:'):
                continue
            package_id = line.split(':', 1)[1]
            packages.append(InstalledPackage(
                package_id=package_id,
                is_system=package_id in system_packages
            ))

        self.logger.info(f"Enumerated {len(packages)} packages ({len(system_packages)} system)")
        return packages
