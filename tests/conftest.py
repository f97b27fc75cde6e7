"""Shared fixtures: a SQLite-backed store and service clients on fake sessions."""
import pytest
import requests
from sqlalchemy import text

from services.bus_service import BusService
from services.route_service import RouteService
from services.schedule_service import ScheduleService
from storage.transit_store import TransitStore

BUS_URL = "http://bus.test"
SCHEDULE_URL = "http://schedule.test"
ROUTE_URL = "http://route.test"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text or str(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; unknown URLs behave like a dead service."""

    def __init__(self, handlers=None):
        self.handlers = dict(handlers or {})
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        handler = self.handlers.get((method, url))
        if handler is None:
            raise requests.ConnectionError(f"Connection refused: {url}")
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(**kwargs)
        return handler

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)


class Seeder:
    """Inserts rows with increasing created_at so listing order is fixed."""

    def __init__(self, store: TransitStore):
        self.store = store
        self._tick = 0

    def _timestamp(self):
        self._tick += 1
        return f"2025-01-01 00:00:{self._tick:02d}"

    def route(self, route_id, code, status="active", bus_id=None, name=None):
        with self.store.engine.begin() as conn:
            conn.execute(text("""
                INSERT INTO routes (id, route_code, route_name, status, bus_id, created_at)
                VALUES (:id, :code, :name, :status, :bus_id, :created_at)
            """), {"id": route_id, "code": code, "name": name or f"Route {code}",
                   "status": status, "bus_id": bus_id, "created_at": self._timestamp()})

    def bus(self, bus_id, plate, capacity=40, model="Hino RK8"):
        with self.store.engine.begin() as conn:
            conn.execute(text("""
                INSERT INTO buses (id, plate, capacity, model, created_at)
                VALUES (:id, :plate, :capacity, :model, :created_at)
            """), {"id": bus_id, "plate": plate, "capacity": capacity,
                   "model": model, "created_at": self._timestamp()})

    def bindings(self):
        """route id -> bound bus id (None when unbound)."""
        with self.store.engine.connect() as conn:
            rows = conn.execute(text("SELECT id, bus_id FROM routes")).all()
        return {row[0]: row[1] for row in rows}


def _to_handler(answer):
    """(status, payload) tuple, exception, or callable returning a tuple."""
    if isinstance(answer, Exception):
        return answer
    if callable(answer):
        return lambda **kwargs: FakeResponse(*answer(**kwargs))
    return FakeResponse(*answer)


def _session(base_url, responses):
    return FakeSession({(method, f"{base_url}{path}"): _to_handler(answer)
                        for (method, path), answer in (responses or {}).items()})


@pytest.fixture
def store(tmp_path):
    store = TransitStore(database_url=f"sqlite:///{tmp_path / 'transit.db'}", schema="")
    store.create_tables()
    return store


@pytest.fixture
def seed(store):
    return Seeder(store)


@pytest.fixture
def make_bus_service():
    def make(buses=None, status=200, responses=None):
        responses = dict(responses or {})
        if buses is not None:
            responses[("GET", "/api/buses")] = (status, {"success": True, "data": buses})
        return BusService(base_url=BUS_URL, session=_session(BUS_URL, responses))
    return make


@pytest.fixture
def make_schedule_service():
    def make(schedules=None, status=200):
        responses = {}
        if schedules is not None:
            responses[("GET", "/api/schedules")] = (status, {"success": True, "data": schedules})
        return ScheduleService(base_url=SCHEDULE_URL, session=_session(SCHEDULE_URL, responses))
    return make


@pytest.fixture
def make_route_service():
    def make(responses=None):
        return RouteService(base_url=ROUTE_URL, session=_session(ROUTE_URL, responses))
    return make
