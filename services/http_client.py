"""Shared HTTP plumbing for collaborating TransTrack services."""
from typing import Any, Dict, Optional
import requests
from loguru import logger

from configurations.config import Config


class ServiceUnavailable(Exception):
    """Collaborator could not be reached or answered with a server error."""


class ServiceClient:
    """Thin wrapper around a requests session bound to one service."""

    service_name = "service"

    def __init__(self, base_url: str, timeout: float, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info(f"{self.service_name} client initialized with base URL: {self.base_url}")

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request; connection-level failures and 5xx raise ServiceUnavailable."""
        url = self._url(path)
        kwargs.setdefault("timeout", self.timeout)
        kwargs.setdefault("headers", {"accept": "application/json"})
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            # Refused, reset and timeouts are expected when a service is down
            logger.info(f"{self.service_name} unreachable at {url}: {e.__class__.__name__}")
            raise ServiceUnavailable(str(e)) from e

        if response.status_code >= 500:
            logger.warning(f"{self.service_name} returned status {response.status_code}")
            raise ServiceUnavailable(f"status {response.status_code}")
        return response

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET a JSON document; None when unreachable, non-200 or not JSON."""
        try:
            response = self._request("GET", path, params=params)
        except ServiceUnavailable:
            return None

        if response.status_code != 200:
            logger.warning(f"{self.service_name} returned status {response.status_code}: {response.text[:200]}")
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning(f"{self.service_name} returned a non-JSON body")
            return None

    def check_health(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Probe the service's /health endpoint."""
        url = self._url("/health")
        try:
            response = self.session.get(url, timeout=timeout or Config.HEALTH_CHECK_TIMEOUT)
        except requests.ConnectionError:
            return {"service": self.service_name, "url": self.base_url, "status": "DOWN",
                    "message": "service is not running"}
        except requests.RequestException as e:
            return {"service": self.service_name, "url": self.base_url, "status": "ERROR",
                    "message": str(e)}

        if response.status_code == 200:
            return {"service": self.service_name, "url": self.base_url, "status": "OK"}
        return {"service": self.service_name, "url": self.base_url, "status": "ERROR",
                "message": f"status {response.status_code}"}
