"""
API handler for device inventory REST endpoints.
Reads installer and label metadata reported by a device management service.
"""

import os
import requests
from urllib.parse import quote
from typing import Optional, Dict, Any, List

from .base_handler import BasePackageSource, PackageNotFoundError, PackageSourceError
from models.package_record import InstalledPackage


class APIPackageSource(BasePackageSource):
    """Package source backed by a device inventory API."""

    def __init__(self, config: Dict[str, Any], settings: Dict[str, Any] = None):
        super().__init__(config, settings)
        self.base_url = (config.get('base_url') or '').rstrip('/')
        self.api_token = config.get('api_token') or os.getenv('SIDEGUARD_API_TOKEN')

    def get_method_name(self) -> str:
        return "api"

    def _get(self, path: str, package_id: str = None) -> Any:
        """
        GET a JSON document from the inventory API.

        Args:
            path: Path relative to base_url
            package_id: Package the request is about, for 404 mapping

        Returns:
            Decoded JSON body
        """
        if not self.base_url:
            raise PackageSourceError("No base_url configured")

        http_settings = self.settings.get('http', {})
        timeout = http_settings.get('timeout', 30)
        max_retries = max(1, http_settings.get('max_retries', 3))
        user_agent = http_settings.get('user_agent', 'Sideguard-Audit/1.0')

        headers = {
            'User-Agent': user_agent,
            'Accept': 'application/json'
        }
        if self.api_token:
            headers['Authorization'] = f"Bearer {self.api_token}"

        url = f"{self.base_url}/{path.lstrip('/')}"
        last_error = None

        for attempt in range(max_retries):
            try:
                self.logger.debug(f"Fetching {url} (attempt {attempt + 1})")
                response = requests.get(url, headers=headers, timeout=timeout)

                if response.status_code == 404 and package_id:
                    raise PackageNotFoundError(package_id)
                response.raise_for_status()

            except requests.exceptions.RequestException as e:
                self.logger.warning(f"Attempt {attempt + 1} failed: {e}")
                last_error = e
                continue

            try:
                return response.json()
            except ValueError as e:
                raise PackageSourceError(f"Invalid JSON from {url}: {e}") from e

        self.handle_error(package_id or url, last_error)
        raise PackageSourceError(f"Request to {url} failed: {last_error}") from last_error

    def _get_package(self, package_id: str) -> Dict[str, Any]:
        data = self._get(f"packages/{quote(package_id, safe='')}", package_id=package_id)
        if not isinstance(data, dict):
            raise PackageSourceError(f"Unexpected response for {package_id}: {type(data).__name__}")
        return data

    def get_installer_package(self, package_id: str) -> Optional[str]:
        return self._get_package(package_id).get('installer') or None

    def get_application_label(self, package_id: str) -> Optional[str]:
        return self._get_package(package_id).get('label') or None

    def list_installed_packages(self) -> List[InstalledPackage]:
        data = self._get("packages")
        if isinstance(data, dict):
            data = data.get('packages', [])
        if not isinstance(data, list):
            raise PackageSourceError(f"Unexpected package listing: {type(data).__name__}")

        packages = []
        for item in data:
            package_id = item.get('package_name') if isinstance(item, dict) else None
            if not package_id:
                self.logger.warning(f"Skipping malformed package entry: {item!r}")
                continue
            packages.append(InstalledPackage(
                package_id=package_id,
                is_system=bool(item.get('system', False))
            ))
        return packages
