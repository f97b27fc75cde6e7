"""Fallback assignment: pair routes still lacking a bus with unused buses."""
import logging
from typing import List, Set

from core.conflict_checker import ConflictChecker
from core.data_access import DataAccessShim
from models.transit import AssignmentResult, Bus, PassSummary, PersistResult, Route

logger = logging.getLogger(__name__)


class UnusedBusAssignmentAgent:
    """Greedy first-fit matching of unbound routes to free buses.

    No backtracking: each route takes the first free bus in listing order.
    """

    name = "unused_bus"

    def __init__(self, data_access: DataAccessShim, conflict_checker: ConflictChecker):
        self.data_access = data_access
        self.conflict_checker = conflict_checker

    def run(self) -> PassSummary:
        summary = PassSummary(self.name)

        # Re-read: the schedule pass may have just bound some of these
        routes = self.data_access.fetch_routes_needing_bus()
        if not routes:
            logger.info("All routes already have a bus")
            return summary
        logger.info(f"{len(routes)} routes without a bus, assigning unused buses")

        unused = self._unused_buses()
        logger.info(f"{len(unused)} unused buses available")

        consumed: Set[str] = set()
        for route in routes:
            self._assign_route(route, unused, consumed, summary)

        logger.info(f"Unused bus assignment: {summary.assigned} assigned, "
                    f"{summary.skipped} skipped, {summary.failed} failed")
        return summary

    def _unused_buses(self) -> List[Bus]:
        """All known buses not bound to any route, in original listing order."""
        used = self.data_access.fetch_used_bus_ids()
        return [bus for bus in self.data_access.fetch_all_buses() if bus.id not in used]

    def _assign_route(self, route: Route, unused: List[Bus], consumed: Set[str], summary: PassSummary):
        had_failure = False

        for bus in unused:
            if bus.id in consumed:
                continue
            if self.conflict_checker.is_bus_bound_elsewhere(bus.id, route.id):
                consumed.add(bus.id)
                continue

            persisted = self.data_access.persist_assignment(route.id, bus.id)
            if persisted is PersistResult.ASSIGNED:
                consumed.add(bus.id)
                logger.info(f"{route.display_code} -> bus {bus.display_plate} ({bus.id[:8]})")
                summary.record(route.id, bus.id, AssignmentResult.ASSIGNED)
                return
            if persisted is PersistResult.ROUTE_BOUND:
                summary.record(route.id, None, AssignmentResult.SKIPPED_ALREADY_ASSIGNED,
                               "route bound by another writer")
                return
            if persisted is PersistResult.ROUTE_MISSING:
                summary.record(route.id, None, AssignmentResult.SKIPPED_ROUTE_MISSING, "route not found")
                return

            # Conflict or write failure: this bus is out for the rest of the run
            consumed.add(bus.id)
            if persisted is not PersistResult.CONFLICT:
                had_failure = True
                logger.error(f"Assigning bus {bus.id[:8]} to {route.display_code} failed")

        if had_failure:
            summary.record(route.id, None, AssignmentResult.FAILED, "write failed for every candidate")
        else:
            logger.info(f"Skip {route.display_code} - no bus available")
            summary.record(route.id, None, AssignmentResult.SKIPPED_NO_BUS)
