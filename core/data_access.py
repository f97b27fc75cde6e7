"""Uniform access to routes and buses, remote service first, local store second."""
import logging
from typing import List, Optional, Set
from sqlalchemy.exc import SQLAlchemyError

from models.transit import Bus, PersistResult, Route
from services.bus_service import BusService
from services.payloads import frame_to_records
from services.route_service import RouteService
from storage.transit_store import TransitStore

logger = logging.getLogger(__name__)


def order_routes_for_assignment(routes: List[Route]) -> List[Route]:
    """Active routes first, then the rest; ties by route code ascending."""
    return sorted(routes, key=lambda r: (0 if r.is_active else 1, r.route_code or ""))


class DataAccessShim:
    """Reads and writes used by the assignment passes.

    Every method answers with a value; collaborator and store failures are
    logged and turned into fallbacks or empty results.
    """

    def __init__(self, store: TransitStore, bus_service: Optional[BusService] = None,
                 route_service: Optional[RouteService] = None, fetch_limit: Optional[int] = None):
        self.store = store
        self.bus_service = bus_service
        self.route_service = route_service
        self.fetch_limit = fetch_limit

    def fetch_routes(self) -> List[Route]:
        if self.route_service is not None:
            df = self.route_service.list_routes(self.fetch_limit)
            if df is not None:
                routes = [Route.from_record(r) for r in frame_to_records(df)]
                return [r for r in routes if r is not None]
            logger.info("RouteService unavailable, reading routes from database")

        try:
            return self.store.fetch_routes()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching routes from database: {e}")
            return []

    def fetch_routes_needing_bus(self) -> List[Route]:
        return order_routes_for_assignment([r for r in self.fetch_routes() if not r.bus_id])

    def fetch_all_buses(self) -> List[Bus]:
        if self.bus_service is not None:
            df = self.bus_service.list_buses(self.fetch_limit)
            if df is not None:
                buses = [Bus.from_record(r) for r in frame_to_records(df)]
                return [b for b in buses if b is not None]
            logger.info("BusService unavailable, reading buses from database")

        try:
            buses = self.store.fetch_buses(self.fetch_limit)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching buses from database: {e}")
            return []
        if buses:
            logger.info(f"Loaded {len(buses)} buses from database")
        return buses

    def fetch_used_bus_ids(self) -> Set[str]:
        return {r.bus_id for r in self.fetch_routes() if r.bus_id}

    def persist_assignment(self, route_id: str, bus_id: str) -> PersistResult:
        if self.route_service is not None:
            result = self.route_service.assign_bus(route_id, bus_id)
            if result is not PersistResult.UNAVAILABLE:
                return result
            logger.info("RouteService unavailable, using direct database update")

        try:
            return self.store.assign_bus_if_free(route_id, bus_id)
        except SQLAlchemyError as e:
            logger.error(f"Error assigning bus {bus_id[:8]} to route {route_id[:8]}: {e}")
            return PersistResult.FAILED
