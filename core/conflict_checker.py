"""One-bus-one-route guard."""
import logging
from sqlalchemy.exc import SQLAlchemyError

from storage.transit_store import TransitStore

logger = logging.getLogger(__name__)


class ConflictChecker:
    def __init__(self, store: TransitStore):
        self.store = store

    def is_bus_bound_elsewhere(self, bus_id: str, excluding_route_id: str) -> bool:
        """True when another route holds ``bus_id``, or when we can't tell."""
        try:
            holder = self.store.find_route_holding_bus(bus_id, excluding_route_id)
        except SQLAlchemyError as e:
            # Treat as used so a broken store never double-books a bus
            logger.warning(f"Conflict check for bus {bus_id[:8]} failed: {e}")
            return True
        if holder:
            logger.debug(f"Bus {bus_id[:8]} already bound to route {holder[:8]}")
        return holder is not None
