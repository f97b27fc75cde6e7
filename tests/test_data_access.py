"""Tests for the remote-first, store-fallback data access shim."""
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from core.data_access import DataAccessShim, order_routes_for_assignment
from models.transit import PersistResult, Route


def broken_store():
    store = MagicMock()
    error = OperationalError("SELECT", {}, Exception("db down"))
    store.fetch_routes.side_effect = error
    store.fetch_buses.side_effect = error
    store.assign_bus_if_free.side_effect = error
    return store


class TestFetchAllBuses:
    def test_remote_inventory_wins(self, store, seed, make_bus_service):
        seed.bus("local-1", "L 1")
        shim = DataAccessShim(store, bus_service=make_bus_service([
            {"id": "b1", "plate": "B 1"}, {"id": "b2", "plate": "B 2"},
        ]))

        assert [b.id for b in shim.fetch_all_buses()] == ["b1", "b2"]

    def test_falls_back_to_database_when_unreachable(self, store, seed, make_bus_service):
        seed.bus("local-1", "L 1")
        seed.bus("local-2", "L 2")
        shim = DataAccessShim(store, bus_service=make_bus_service())

        assert [b.id for b in shim.fetch_all_buses()] == ["local-1", "local-2"]

    def test_falls_back_on_server_error(self, store, seed, make_bus_service):
        seed.bus("local-1", "L 1")
        shim = DataAccessShim(store, bus_service=make_bus_service([], status=500))

        assert [b.id for b in shim.fetch_all_buses()] == ["local-1"]

    def test_empty_when_everything_fails(self, make_bus_service):
        shim = DataAccessShim(broken_store(), bus_service=make_bus_service())
        assert shim.fetch_all_buses() == []


class TestFetchRoutes:
    def test_routes_needing_bus_are_ordered(self, store, seed):
        seed.route("r1", "K03", status="inactive")
        seed.route("r2", "K02")
        seed.route("r3", "K01", bus_id="b1")
        seed.route("r4", "K04", status="maintenance")
        seed.route("r5", "K00")
        shim = DataAccessShim(store)

        assert [r.id for r in shim.fetch_routes_needing_bus()] == ["r5", "r2", "r1", "r4"]

    def test_remote_route_list_is_used_when_available(self, store, seed, make_route_service):
        seed.route("local", "L01")
        route_service = make_route_service({("GET", "/api/routes"): (200, {"success": True, "data": [
            {"id": "r1", "routeCode": "K01", "status": "active", "busId": "b1"},
            {"id": "r2", "routeCode": "K02", "status": "active", "busId": None},
        ]})})
        shim = DataAccessShim(store, route_service=route_service)

        assert [r.id for r in shim.fetch_routes()] == ["r1", "r2"]
        assert shim.fetch_used_bus_ids() == {"b1"}

    def test_integer_ids_match_across_routes_and_buses(self, store, make_bus_service, make_route_service):
        route_service = make_route_service({("GET", "/api/routes"): (200, {"success": True, "data": [
            {"id": 1, "routeCode": "K01", "busId": 5},
            {"id": 2, "routeCode": "K02", "busId": None},
        ]})})
        bus_service = make_bus_service([{"id": 5, "plate": "B 5"}, {"id": 6}, {"plate": "no-id"}])
        shim = DataAccessShim(store, bus_service=bus_service, route_service=route_service)

        assert [(r.id, r.bus_id) for r in shim.fetch_routes()] == [("1", "5"), ("2", None)]
        assert shim.fetch_used_bus_ids() == {"5"}
        assert [b.id for b in shim.fetch_all_buses()] == ["5", "6"]

    def test_route_service_down_reads_database(self, store, seed, make_route_service):
        seed.route("r1", "K01", bus_id="b1")
        shim = DataAccessShim(store, route_service=make_route_service())

        assert [r.id for r in shim.fetch_routes()] == ["r1"]

    def test_order_helper_handles_missing_codes(self):
        routes = [Route("a", None, status="active"), Route("b", "K01", status="inactive"), Route("c", "K02")]
        assert [r.id for r in order_routes_for_assignment(routes)] == ["a", "c", "b"]


class TestPersistAssignment:
    def test_remote_assignment_skips_direct_write(self, store, seed, make_route_service):
        seed.route("r1", "K01")
        shim = DataAccessShim(store, route_service=make_route_service({
            ("POST", "/api/routes/r1/assign-bus"): (200, {"success": True}),
        }))

        assert shim.persist_assignment("r1", "b1") is PersistResult.ASSIGNED
        # The fake remote does not write, so the table is untouched
        assert seed.bindings() == {"r1": None}

    def test_unavailable_remote_falls_back_to_conditional_write(self, store, seed, make_route_service):
        seed.route("r1", "K01")
        shim = DataAccessShim(store, route_service=make_route_service())

        assert shim.persist_assignment("r1", "b1") is PersistResult.ASSIGNED
        assert seed.bindings() == {"r1": "b1"}

    def test_definitive_remote_answer_is_returned(self, store, seed, make_route_service):
        seed.route("r1", "K01")
        shim = DataAccessShim(store, route_service=make_route_service({
            ("POST", "/api/routes/r1/assign-bus"): (404, {"success": False}),
        }))

        assert shim.persist_assignment("r1", "b1") is PersistResult.ROUTE_MISSING
        assert seed.bindings() == {"r1": None}

    def test_direct_write_rechecks_conflicts(self, store, seed):
        seed.route("r1", "K01", bus_id="b1")
        seed.route("r2", "K02")
        shim = DataAccessShim(store)

        assert shim.persist_assignment("r2", "b1") is PersistResult.CONFLICT

    def test_store_error_is_reported_as_failed(self):
        shim = DataAccessShim(broken_store())
        assert shim.persist_assignment("r1", "b1") is PersistResult.FAILED
