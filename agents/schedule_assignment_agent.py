"""Schedule-derived bus assignment: the latest scheduled bus wins its route."""
import logging
from typing import List, Optional, Set
import pandas as pd

from core.conflict_checker import ConflictChecker
from core.data_access import DataAccessShim
from models.transit import AssignmentResult, PassSummary, PersistResult, ScheduleEntry
from services.schedule_service import ScheduleService

logger = logging.getLogger(__name__)

EPOCH = pd.Timestamp(0, tz="UTC")

PERSIST_TO_RESULT = {
    PersistResult.ASSIGNED: AssignmentResult.ASSIGNED,
    PersistResult.CONFLICT: AssignmentResult.SKIPPED_CONFLICT,
    PersistResult.ROUTE_BOUND: AssignmentResult.SKIPPED_ALREADY_ASSIGNED,
    PersistResult.ROUTE_MISSING: AssignmentResult.SKIPPED_ROUTE_MISSING,
    PersistResult.UNAVAILABLE: AssignmentResult.FAILED,
    PersistResult.FAILED: AssignmentResult.FAILED,
}


def select_latest_assignments(schedules: pd.DataFrame) -> List[ScheduleEntry]:
    """One entry per route: the one with the latest departure time.

    Entries are stable-sorted by time descending before grouping, so on equal
    times the first one encountered wins. Missing times count as the epoch.
    Result order follows the sorted feed (latest departures first).
    """
    if schedules is None or schedules.empty:
        return []

    df = schedules.copy()
    df["_departure"] = pd.to_datetime(df["departure_time"], utc=True, errors="coerce").fillna(EPOCH)
    df["_order"] = range(len(df))
    df = df.sort_values(["_departure", "_order"], ascending=[False, True], kind="mergesort")
    latest = df.drop_duplicates(subset="route_id", keep="first")

    entries = []
    for _, row in latest.iterrows():
        missing_time = pd.isna(row["departure_time"])
        entries.append(ScheduleEntry(
            route_id=str(row["route_id"]),
            bus_id=str(row["bus_id"]),
            departure_time=None if missing_time else row["_departure"].to_pydatetime(),
            route_name=_optional(row.get("route_name")),
            route_code=_optional(row.get("route_code")),
        ))
    return entries


def _optional(value) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value)


class ScheduleAssignmentAgent:
    """Applies the authoritative bus-per-route mapping from the schedule feed."""

    name = "schedule"

    def __init__(self, schedule_service: Optional[ScheduleService], data_access: DataAccessShim,
                 conflict_checker: ConflictChecker, fetch_limit: Optional[int] = None):
        self.schedule_service = schedule_service
        self.data_access = data_access
        self.conflict_checker = conflict_checker
        self.fetch_limit = fetch_limit

    def run(self) -> PassSummary:
        summary = PassSummary(self.name)
        logger.info("Auto-assigning buses from ScheduleService")

        schedules = None
        if self.schedule_service is not None:
            schedules = self.schedule_service.list_schedules(self.fetch_limit)
        if schedules is None:
            logger.info("ScheduleService not available, skipping schedule assignment")
            summary.error = "schedule unavailable"
            return summary

        selections = select_latest_assignments(schedules)
        if not selections:
            logger.info("No schedules with a route and bus found")
            return summary
        logger.info(f"Found {len(selections)} routes with a bus in the schedule feed")

        routes_by_id = {r.id: r for r in self.data_access.fetch_routes()}
        consumed: Set[str] = set()

        for entry in selections:
            self._apply(entry, routes_by_id, consumed, summary)

        logger.info(f"Schedule assignment: {summary.assigned} assigned, "
                    f"{summary.skipped} skipped, {summary.failed} failed")
        return summary

    def _apply(self, entry: ScheduleEntry, routes_by_id, consumed: Set[str], summary: PassSummary):
        route_id, bus_id = entry.route_id, entry.bus_id
        display = entry.route_code or route_id[:8]
        route = routes_by_id.get(route_id)

        if route is None:
            summary.record(route_id, bus_id, AssignmentResult.SKIPPED_ROUTE_MISSING, "route not found")
            return
        if route.bus_id == bus_id:
            consumed.add(bus_id)
            summary.record(route_id, bus_id, AssignmentResult.SKIPPED_ALREADY_ASSIGNED, "already bound to this bus")
            return
        if route.bus_id:
            summary.record(route_id, bus_id, AssignmentResult.SKIPPED_ALREADY_ASSIGNED,
                           f"already bound to bus {route.bus_id}")
            return
        if bus_id in consumed:
            summary.record(route_id, bus_id, AssignmentResult.SKIPPED_CONFLICT, "bus claimed earlier in this run")
            return
        if self.conflict_checker.is_bus_bound_elsewhere(bus_id, route_id):
            consumed.add(bus_id)
            logger.info(f"Skip {display} - bus {bus_id[:8]} already used by another route")
            summary.record(route_id, bus_id, AssignmentResult.SKIPPED_CONFLICT, "bus bound to another route")
            return

        persisted = self.data_access.persist_assignment(route_id, bus_id)
        result = PERSIST_TO_RESULT[persisted]
        if persisted is PersistResult.ASSIGNED:
            consumed.add(bus_id)
            route.bus_id = bus_id
            logger.info(f"{display} -> bus {bus_id[:8]}")
        elif persisted is PersistResult.CONFLICT:
            consumed.add(bus_id)
        elif result is AssignmentResult.FAILED:
            logger.error(f"Route {display} could not be assigned bus {bus_id[:8]}")
        summary.record(route_id, bus_id, result, None if persisted.ok else persisted.value)
