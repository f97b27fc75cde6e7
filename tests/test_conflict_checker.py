"""Tests for the one-bus-one-route conflict check."""
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from core.conflict_checker import ConflictChecker


class TestConflictChecker:
    def test_bus_bound_to_other_route(self, store, seed):
        seed.route("r1", "K01", bus_id="b1")
        seed.route("r2", "K02")
        checker = ConflictChecker(store)

        assert checker.is_bus_bound_elsewhere("b1", "r2") is True

    def test_bus_bound_to_same_route_is_not_a_conflict(self, store, seed):
        seed.route("r1", "K01", bus_id="b1")
        assert ConflictChecker(store).is_bus_bound_elsewhere("b1", "r1") is False

    def test_free_bus(self, store, seed):
        seed.route("r1", "K01")
        assert ConflictChecker(store).is_bus_bound_elsewhere("b7", "r1") is False

    def test_store_error_fails_closed(self):
        broken = MagicMock()
        broken.find_route_holding_bus.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        assert ConflictChecker(broken).is_bus_bound_elsewhere("b1", "r1") is True
