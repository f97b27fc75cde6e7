"""Orchestrator for bus-to-route assignment reconciliation."""
import traceback
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import datetime
from typing import Callable, List, Optional
from loguru import logger

from agents.schedule_assignment_agent import ScheduleAssignmentAgent
from agents.unused_bus_assignment_agent import UnusedBusAssignmentAgent
from configurations.config import Config
from core.conflict_checker import ConflictChecker
from core.data_access import DataAccessShim
from core.run_history import RunHistory
from models.transit import PassSummary, ReconcileSummary
from services.bus_service import BusService
from services.route_service import RouteService
from services.schedule_service import ScheduleService
from storage.transit_store import TransitStore


class BusRouteReconciler:
    """Runs the schedule pass then the unused-bus pass.

    Safe to call repeatedly: routes that already have a bus are left alone,
    so a second run with no outside changes assigns nothing.
    """

    def __init__(self, store: TransitStore, schedule_service: Optional[ScheduleService] = None,
                 bus_service: Optional[BusService] = None, route_service: Optional[RouteService] = None,
                 history: Optional[RunHistory] = None, fetch_limit: Optional[int] = None):
        self.store = store
        self.schedule_service = schedule_service
        self.bus_service = bus_service
        self.route_service = route_service
        self.history = history if history is not None else RunHistory()

        self.data_access = DataAccessShim(store, bus_service, route_service, fetch_limit)
        self.conflict_checker = ConflictChecker(store)
        self.schedule_agent = ScheduleAssignmentAgent(schedule_service, self.data_access,
                                                      self.conflict_checker, fetch_limit)
        self.unused_bus_agent = UnusedBusAssignmentAgent(self.data_access, self.conflict_checker)

    def reconcile(self, trigger: str = "manual") -> ReconcileSummary:
        """Run both passes; never raises."""
        summary = ReconcileSummary()
        logger.info(f"🚌 Starting bus assignment reconciliation (trigger: {trigger})")

        # Sequential: the unused-bus pass must see the schedule pass's writes
        for name, run_pass in self._passes():
            summary.passes.append(self._run_pass(name, run_pass))

        summary.finished_at = datetime.now()
        self.history.record(summary, trigger)
        logger.success(f"✅ Reconciliation finished: {summary.assigned} assigned, "
                       f"{summary.skipped} skipped, {summary.failed} failed")
        return summary

    def reconcile_with_deadline(self, seconds: float, trigger: str = "manual") -> ReconcileSummary:
        """Run ``reconcile`` but stop waiting after ``seconds``.

        The worker keeps going in the background on timeout; whatever it has
        written by then is valid state.
        """
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.reconcile, trigger)
        try:
            return future.result(timeout=seconds)
        except FutureTimeout:
            logger.warning(f"⏱️ Reconciliation did not finish within {seconds}s, returning partial result")
            return ReconcileSummary(finished_at=datetime.now(), timed_out=True)
        finally:
            executor.shutdown(wait=False)

    def assignment_status(self) -> dict:
        """Routes with and without a bus, from the best available source."""
        routes = self.data_access.fetch_routes()
        unbound = [r for r in routes if not r.bus_id]
        return {
            "total": len(routes),
            "with_bus": len(routes) - len(unbound),
            "without_bus": len(unbound),
            "unbound_routes": [
                {"id": r.id, "route_code": r.route_code, "route_name": r.route_name, "status": r.status}
                for r in unbound
            ],
        }

    def check_services(self) -> List[dict]:
        """Health of every collaborator plus the database."""
        results = [client.check_health() for client in
                   (self.route_service, self.bus_service, self.schedule_service) if client is not None]
        try:
            self.store.ping()
            results.append({"service": "Database", "status": "OK"})
        except Exception as e:
            results.append({"service": "Database", "status": "DOWN", "message": str(e)})
        return results

    def _passes(self) -> List[tuple]:
        return [
            (self.schedule_agent.name, self.schedule_agent.run),
            (self.unused_bus_agent.name, self.unused_bus_agent.run),
        ]

    def _run_pass(self, name: str, run_pass: Callable[[], PassSummary]) -> PassSummary:
        try:
            return run_pass()
        except Exception as e:
            logger.error(f"❌ Error in {name} pass: {e}")
            logger.debug(traceback.format_exc())
            return PassSummary(name, error=str(e))


def build_reconciler(history: Optional[RunHistory] = None) -> BusRouteReconciler:
    """Wire a reconciler from Config. Raises ConfigurationError without a database."""
    store = TransitStore()
    route_service = None
    if Config.USE_ROUTE_SERVICE and Config.ROUTE_SERVICE_URL:
        route_service = RouteService()
    elif Config.USE_ROUTE_SERVICE:
        logger.warning("USE_ROUTE_SERVICE is set but ROUTE_SERVICE_URL is empty, using the database")
    return BusRouteReconciler(
        store,
        schedule_service=ScheduleService(),
        bus_service=BusService(),
        route_service=route_service,
        history=history,
        fetch_limit=Config.FETCH_LIMIT,
    )
