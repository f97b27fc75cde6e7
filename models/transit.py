"""Data models for routes, buses, schedules and assignment outcomes."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

ROUTE_STATUSES = ("active", "inactive", "maintenance")


def _clean(value: Any) -> Optional[str]:
    """Normalize an identifier-like value to a non-empty string or None."""
    if value is None:
        return None
    # NaN from pandas records
    if isinstance(value, float) and value != value:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class Route:
    id: str
    route_code: Optional[str] = None
    route_name: Optional[str] = None
    status: str = "active"
    bus_id: Optional[str] = None
    created_at: Any = None

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() == "active"

    @property
    def display_code(self) -> str:
        return self.route_code or self.id[:8]

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional["Route"]:
        route_id = _clean(record.get("id"))
        if route_id is None:
            return None
        return cls(
            id=route_id,
            route_code=_clean(record.get("route_code")),
            route_name=_clean(record.get("route_name")),
            status=(_clean(record.get("status")) or "active").lower(),
            bus_id=_clean(record.get("bus_id")),
            created_at=record.get("created_at"),
        )


@dataclass
class Bus:
    id: str
    plate: Optional[str] = None
    capacity: Optional[int] = None
    model: Optional[str] = None

    @property
    def display_plate(self) -> str:
        return self.plate or self.id[:8]

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional["Bus"]:
        bus_id = _clean(record.get("id"))
        if bus_id is None:
            return None
        capacity = record.get("capacity")
        try:
            capacity = int(capacity) if capacity is not None else None
        except (TypeError, ValueError):
            capacity = None
        if capacity is not None and capacity <= 0:
            capacity = None
        return cls(
            id=bus_id,
            plate=_clean(record.get("plate")),
            capacity=capacity,
            model=_clean(record.get("model")),
        )


@dataclass
class ScheduleEntry:
    route_id: str
    bus_id: str
    departure_time: Optional[datetime] = None
    route_name: Optional[str] = None
    route_code: Optional[str] = None


class PersistResult(str, Enum):
    """Result of a single attempt to write a route's bus."""
    ASSIGNED = "assigned"
    ROUTE_MISSING = "route_missing"
    ROUTE_BOUND = "route_bound"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self is PersistResult.ASSIGNED


class AssignmentResult(str, Enum):
    ASSIGNED = "assigned"
    SKIPPED_ALREADY_ASSIGNED = "skipped-already-assigned"
    SKIPPED_CONFLICT = "skipped-conflict"
    SKIPPED_NO_BUS = "skipped-no-bus-available"
    SKIPPED_ROUTE_MISSING = "skipped-route-missing"
    FAILED = "failed"

    @property
    def is_skip(self) -> bool:
        return self.value.startswith("skipped")


@dataclass
class AssignmentOutcome:
    route_id: str
    bus_id: Optional[str]
    result: AssignmentResult
    source: str
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route_id": self.route_id,
            "bus_id": self.bus_id,
            "result": self.result.value,
            "source": self.source,
            "detail": self.detail,
        }


@dataclass
class PassSummary:
    name: str
    outcomes: List[AssignmentOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def record(self, route_id: str, bus_id: Optional[str], result: AssignmentResult,
               detail: Optional[str] = None) -> AssignmentOutcome:
        outcome = AssignmentOutcome(route_id, bus_id, result, self.name, detail)
        self.outcomes.append(outcome)
        return outcome

    @property
    def assigned(self) -> int:
        return sum(1 for o in self.outcomes if o.result is AssignmentResult.ASSIGNED)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.result.is_skip)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.result is AssignmentResult.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assigned": self.assigned,
            "skipped": self.skipped,
            "failed": self.failed,
            "error": self.error,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class ReconcileSummary:
    passes: List[PassSummary] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    timed_out: bool = False

    @property
    def assigned(self) -> int:
        return sum(p.assigned for p in self.passes)

    @property
    def skipped(self) -> int:
        return sum(p.skipped for p in self.passes)

    @property
    def failed(self) -> int:
        return sum(p.failed for p in self.passes)

    def get_pass(self, name: str) -> Optional[PassSummary]:
        for summary in self.passes:
            if summary.name == name:
                return summary
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assigned": self.assigned,
            "skipped": self.skipped,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "passes": {p.name: p.to_dict() for p in self.passes},
        }


@dataclass
class RunRecord:
    run_id: str
    trigger: str
    summary: ReconcileSummary
    timestamp: datetime
