"""Data models for provisioned throughput autoscaling."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .config import (
    AdjustmentDirection,
    AdjustmentRule,
    CapacityBounds,
    CapacityType,
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class ThroughputSample:
    """Provisioned vs. consumed throughput of one table or index."""

    resource_name: str
    provisioned_read_capacity_units: float
    provisioned_write_capacity_units: float
    consumed_read_capacity_units: float
    consumed_write_capacity_units: float
    index_name: Optional[str] = None
    last_increase_at: Optional[datetime] = None
    last_decrease_at: Optional[datetime] = None
    number_of_decreases_today: int = 0

    def __post_init__(self):
        for name in (
            "provisioned_read_capacity_units",
            "provisioned_write_capacity_units",
            "consumed_read_capacity_units",
            "consumed_write_capacity_units",
            "number_of_decreases_today",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @property
    def resource_id(self) -> str:
        if self.index_name:
            return f"{self.resource_name}/{self.index_name}"
        return self.resource_name

    def provisioned(self, capacity_type: CapacityType) -> float:
        if CapacityType(capacity_type) == CapacityType.READ:
            return self.provisioned_read_capacity_units
        return self.provisioned_write_capacity_units

    def consumed(self, capacity_type: CapacityType) -> float:
        if CapacityType(capacity_type) == CapacityType.READ:
            return self.consumed_read_capacity_units
        return self.consumed_write_capacity_units

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ThroughputSample":
        """Build a sample from a describe-style mapping.

        Expected shape::

            {
                "TableName": "orders",
                "IndexName": "by-date",            # optional
                "ProvisionedThroughput": {
                    "ReadCapacityUnits": 10,
                    "WriteCapacityUnits": 5,
                    "LastIncreaseDateTime": "2026-01-01T10:00:00Z",
                    "LastDecreaseDateTime": None,
                    "NumberOfDecreasesToday": 1,
                },
                "ConsumedThroughput": {"ReadCapacityUnits": 8, "WriteCapacityUnits": 1},
            }
        """
        provisioned = data.get("ProvisionedThroughput") or {}
        consumed = data.get("ConsumedThroughput") or {}
        return cls(
            resource_name=data["TableName"],
            index_name=data.get("IndexName"),
            provisioned_read_capacity_units=float(provisioned.get("ReadCapacityUnits", 0)),
            provisioned_write_capacity_units=float(provisioned.get("WriteCapacityUnits", 0)),
            consumed_read_capacity_units=float(consumed.get("ReadCapacityUnits", 0)),
            consumed_write_capacity_units=float(consumed.get("WriteCapacityUnits", 0)),
            last_increase_at=parse_timestamp(provisioned.get("LastIncreaseDateTime")),
            last_decrease_at=parse_timestamp(provisioned.get("LastDecreaseDateTime")),
            number_of_decreases_today=int(provisioned.get("NumberOfDecreasesToday") or 0),
        )


@dataclass(frozen=True)
class AdjustmentContext:
    """Normalized view of one (resource, capacity type, direction) evaluation."""

    resource_name: str
    index_name: Optional[str]
    capacity_type: CapacityType
    direction: AdjustmentDirection
    provisioned_value: float
    consumed_value: float
    utilisation_percent: Optional[float]
    bounds: CapacityBounds
    rule: AdjustmentRule

    @property
    def resource_id(self) -> str:
        if self.index_name:
            return f"{self.resource_name}/{self.index_name}"
        return self.resource_name

    @property
    def is_increment(self) -> bool:
        return self.direction == AdjustmentDirection.INCREMENT

    @property
    def is_decrement(self) -> bool:
        return self.direction == AdjustmentDirection.DECREMENT


@dataclass(frozen=True)
class DecisionRecord:
    """Every intermediate signal behind one adjustment verdict."""

    context: AdjustmentContext
    is_above_max: bool
    is_below_min: bool
    is_above_threshold: bool
    is_below_threshold: bool
    is_after_last_decrease_grace_period: bool
    is_after_last_increase_grace_period: bool
    is_decrement_allowed: bool
    is_adjustment_wanted: bool
    is_adjustment_allowed: bool
    evaluated_at: datetime

    @property
    def is_adjustment_required(self) -> bool:
        return self.is_adjustment_wanted and self.is_adjustment_allowed

    def to_dict(self) -> Dict[str, Any]:
        ctx = self.context
        return {
            "resource_id": ctx.resource_id,
            "resource_name": ctx.resource_name,
            "index_name": ctx.index_name,
            "capacity_type": ctx.capacity_type.value,
            "direction": ctx.direction.value,
            "provisioned": ctx.provisioned_value,
            "consumed": ctx.consumed_value,
            "utilisation_pct": ctx.utilisation_percent,
            "min": ctx.bounds.minimum,
            "max": ctx.bounds.maximum,
            "is_above_max": self.is_above_max,
            "is_below_min": self.is_below_min,
            "is_above_threshold": self.is_above_threshold,
            "is_below_threshold": self.is_below_threshold,
            "is_after_last_decrease_grace_period": self.is_after_last_decrease_grace_period,
            "is_after_last_increase_grace_period": self.is_after_last_increase_grace_period,
            "is_decrement_allowed": self.is_decrement_allowed,
            "is_adjustment_wanted": self.is_adjustment_wanted,
            "is_adjustment_allowed": self.is_adjustment_allowed,
            "is_adjustment_required": self.is_adjustment_required,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


@dataclass
class ThroughputUpdate:
    """Planned throughput change for one table or index."""

    resource_name: str
    index_name: Optional[str] = None
    read_capacity_units: Optional[float] = None
    write_capacity_units: Optional[float] = None
    previous_read_capacity_units: Optional[float] = None
    previous_write_capacity_units: Optional[float] = None

    @property
    def resource_id(self) -> str:
        if self.index_name:
            return f"{self.resource_name}/{self.index_name}"
        return self.resource_name

    @property
    def is_empty(self) -> bool:
        return self.read_capacity_units is None and self.write_capacity_units is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "read_from": self.previous_read_capacity_units,
            "read_to": self.read_capacity_units,
            "write_from": self.previous_write_capacity_units,
            "write_to": self.write_capacity_units,
        }


@dataclass
class CycleReport:
    """Outcome of one monitoring cycle."""

    cycle_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    records: List[DecisionRecord] = field(default_factory=list)
    planned_updates: List[ThroughputUpdate] = field(default_factory=list)
    applied_updates: List[ThroughputUpdate] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    dry_run: bool = False

    @property
    def resources_evaluated(self) -> int:
        return len({r.context.resource_id for r in self.records})

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def summary(self) -> Dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "resources_evaluated": self.resources_evaluated,
            "decisions": len(self.records),
            "planned_updates": len(self.planned_updates),
            "applied_updates": len(self.applied_updates),
            "failures": len(self.failures),
            "dry_run": self.dry_run,
        }
