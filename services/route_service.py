"""Route store client for the RouteService API."""
from typing import Optional
import pandas as pd
import requests
from loguru import logger

from configurations.config import Config
from models.transit import PersistResult
from services.http_client import ServiceClient, ServiceUnavailable
from services.payloads import extract_records, standardize_columns

ROUTE_COLUMNS = ["id", "route_code", "route_name", "status", "bus_id", "created_at"]


class RouteService(ServiceClient):
    service_name = "RouteService"

    column_mappings = {
        'id': 'id',
        'uuid': 'id',
        'routeId': 'id',
        'routeCode': 'route_code',
        'route_code': 'route_code',
        'code': 'route_code',
        'routeName': 'route_name',
        'route_name': 'route_name',
        'name': 'route_name',
        'status': 'status',
        'busId': 'bus_id',
        'bus_id': 'bus_id',
        'busID': 'bus_id',
        'createdAt': 'created_at',
        'created_at': 'created_at',
    }

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        super().__init__(base_url or Config.ROUTE_SERVICE_URL,
                         timeout or Config.ROUTE_SERVICE_TIMEOUT, session)

    def list_routes(self, limit: Optional[int] = None) -> Optional[pd.DataFrame]:
        """Fetch all routes with their bound bus; None when unusable."""
        limit = limit or Config.FETCH_LIMIT
        payload = self._get_json("/api/routes", params={"limit": limit})
        if payload is None:
            return None

        records = extract_records(payload, "routes")
        if records is None:
            logger.warning("RouteService response did not contain a route list")
            return None

        # A list without the bus column can't tell us which routes are bound
        if records and not any(k in records[0] for k in ("busId", "bus_id", "busID")):
            logger.warning("RouteService route list has no bus field, ignoring it")
            return None

        return standardize_columns(records, self.column_mappings,
                                   required=["id"], optional=ROUTE_COLUMNS[1:])

    def assign_bus(self, route_id: str, bus_id: str) -> PersistResult:
        """Ask the route service to bind ``bus_id`` to ``route_id``.

        Only a definitive answer is returned as such; anything else is
        ``UNAVAILABLE`` so the caller can fall back to a direct write.
        """
        try:
            response = self._request("POST", f"/api/routes/{route_id}/assign-bus",
                                     json={"busId": bus_id})
        except ServiceUnavailable:
            return PersistResult.UNAVAILABLE

        if response.status_code in (404, 409):
            # A bare framework 404 means the endpoint itself is missing
            if not self._is_route_error(response):
                logger.info(f"RouteService assign-bus answered {response.status_code} without an error body")
                return PersistResult.UNAVAILABLE
            if response.status_code == 404:
                return PersistResult.ROUTE_MISSING
            return PersistResult.CONFLICT
        if response.status_code != 200:
            # 400 is returned when the bus can't be validated, e.g. BusService down
            logger.info(f"RouteService assign-bus returned {response.status_code} for route {route_id[:8]}")
            return PersistResult.UNAVAILABLE

        try:
            body = response.json()
        except ValueError:
            return PersistResult.UNAVAILABLE
        if isinstance(body, dict) and body.get("success") is False:
            return PersistResult.UNAVAILABLE
        return PersistResult.ASSIGNED

    @staticmethod
    def _is_route_error(response: requests.Response) -> bool:
        """True for the route service's own ``{success: false, ...}`` error body."""
        try:
            body = response.json()
        except ValueError:
            return False
        return isinstance(body, dict) and body.get("success") is False
