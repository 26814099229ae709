"""Configuration for provisioned throughput autoscaling.

Scaling policies are plain frozen dataclasses. They can be built in code or
loaded from the PascalCase mapping used by the store's own tooling:

    {
        "ReadCapacity": {
            "Min": 1,
            "Max": 100,
            "Increment": {"When": {"UtilisationIsAbovePercent": 75}, "By": {"Units": 3}},
            "Decrement": {"When": {"UtilisationIsBelowPercent": 30}, "To": {"ConsumedPercent": 100}},
        },
        "WriteCapacity": {...},
    }
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from .exceptions import PolicyConfigError


class CapacityType(str, Enum):
    """Throughput dimension of a resource."""

    READ = "read"
    WRITE = "write"


class AdjustmentDirection(str, Enum):
    """Direction of a capacity adjustment."""

    INCREMENT = "increment"
    DECREMENT = "decrement"


# ── Default Constants ────────────────────────────────────────────────

DEFAULT_MIN_CAPACITY_UNITS = 1
DEFAULT_MAX_CAPACITY_UNITS = 100
DEFAULT_INCREMENT_ABOVE_PERCENT = 75.0
DEFAULT_INCREMENT_BY_UNITS = 3.0
DEFAULT_INCREMENT_TO_CONSUMED_PERCENT = 110.0
DEFAULT_DECREMENT_BELOW_PERCENT = 30.0
DEFAULT_DECREMENT_COOLDOWN_MINUTES = 60.0
DEFAULT_DECREMENT_MIN_UNIT_ADJUSTMENT = 5.0
DEFAULT_DECREMENT_TO_CONSUMED_PERCENT = 100.0
DEFAULT_DECREMENTS_PER_DAY = 4


@dataclass(frozen=True)
class WhenClause:
    """Conditions under which an adjustment rule applies."""

    utilisation_is_above_percent: Optional[float] = None
    utilisation_is_below_percent: Optional[float] = None
    after_last_increment_minutes: Optional[float] = None
    after_last_decrement_minutes: Optional[float] = None
    unit_adjustment_greater_than: Optional[float] = None


@dataclass(frozen=True)
class StepClause:
    """Amount expressed as units and/or percentages of consumed/provisioned."""

    units: Optional[float] = None
    consumed_percent: Optional[float] = None
    provisioned_percent: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.units is None
            and self.consumed_percent is None
            and self.provisioned_percent is None
        )

    def amount(self, consumed: float, provisioned: float) -> float:
        """Resolve the clause against the current throughput values."""
        total = 0.0
        if self.units is not None:
            total += self.units
        if self.consumed_percent is not None:
            total += consumed * self.consumed_percent / 100.0
        if self.provisioned_percent is not None:
            total += provisioned * self.provisioned_percent / 100.0
        return total


@dataclass(frozen=True)
class AdjustmentRule:
    """When to adjust and how far ("by" a step and/or "to" a target)."""

    when: WhenClause = field(default_factory=WhenClause)
    by: Optional[StepClause] = None
    to: Optional[StepClause] = None


@dataclass(frozen=True)
class CapacityBounds:
    """Absolute capacity bounds for one capacity type."""

    minimum: Optional[float] = None
    maximum: Optional[float] = None


@dataclass(frozen=True)
class CapacityPolicy:
    """Bounds and increment/decrement rules for one capacity type."""

    minimum: Optional[float] = None
    maximum: Optional[float] = None
    increment: AdjustmentRule = field(default_factory=AdjustmentRule)
    decrement: AdjustmentRule = field(default_factory=AdjustmentRule)

    @property
    def bounds(self) -> CapacityBounds:
        return CapacityBounds(minimum=self.minimum, maximum=self.maximum)

    def rule_for(self, direction: AdjustmentDirection) -> AdjustmentRule:
        if AdjustmentDirection(direction) == AdjustmentDirection.INCREMENT:
            return self.increment
        return self.decrement


@dataclass(frozen=True)
class ScalingPolicy:
    """Per-resource scaling policy covering both capacity types."""

    read_capacity: CapacityPolicy = field(default_factory=CapacityPolicy)
    write_capacity: CapacityPolicy = field(default_factory=CapacityPolicy)

    def for_capacity_type(self, capacity_type: CapacityType) -> CapacityPolicy:
        if CapacityType(capacity_type) == CapacityType.READ:
            return self.read_capacity
        return self.write_capacity

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScalingPolicy":
        """Build a policy from the PascalCase configuration mapping.

        Raises:
            PolicyConfigError: if the mapping is malformed.
        """
        if not isinstance(data, Mapping):
            raise PolicyConfigError(
                f"Scaling policy must be a mapping, got {type(data).__name__}"
            )
        _check_keys(data, _POLICY_KEYS, "policy")
        return cls(
            read_capacity=_parse_capacity_policy(data.get("ReadCapacity"), "ReadCapacity"),
            write_capacity=_parse_capacity_policy(data.get("WriteCapacity"), "WriteCapacity"),
        )


# ── Parsing helpers ──────────────────────────────────────────────────

_WHEN_KEYS = {
    "UtilisationIsAbovePercent": "utilisation_is_above_percent",
    "UtilisationIsBelowPercent": "utilisation_is_below_percent",
    "AfterLastIncrementMinutes": "after_last_increment_minutes",
    "AfterLastDecrementMinutes": "after_last_decrement_minutes",
    "UnitAdjustmentGreaterThan": "unit_adjustment_greater_than",
}

_POLICY_KEYS = {"ReadCapacity", "WriteCapacity"}
_CAPACITY_KEYS = {"Min", "Max", "Increment", "Decrement"}
_RULE_KEYS = {"When", "By", "To"}

_STEP_KEYS = {
    "Units": "units",
    "ConsumedPercent": "consumed_percent",
    "ProvisionedPercent": "provisioned_percent",
}


def _number(value: Any, path: str) -> Optional[float]:
    if value is None:
        return None
    # bool is an int subclass; a flag in a numeric slot is a config mistake
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PolicyConfigError(f"{path} must be a number, got {value!r}")
    if value < 0:
        raise PolicyConfigError(f"{path} must be >= 0, got {value!r}")
    return float(value)


def _section(data: Any, path: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise PolicyConfigError(f"{path} must be a mapping, got {type(data).__name__}")
    return data


def _check_keys(data: Mapping[str, Any], allowed, path: str) -> None:
    unknown = set(data) - set(allowed)
    if unknown:
        raise PolicyConfigError(f"Unknown keys in {path}: {sorted(unknown)}")


def _parse_fields(data: Mapping[str, Any], keys: dict[str, str], path: str) -> dict[str, float]:
    _check_keys(data, keys, path)
    return {
        attr: _number(data.get(key), f"{path}.{key}")
        for key, attr in keys.items()
    }


def _parse_step(data: Any, path: str) -> Optional[StepClause]:
    if data is None:
        return None
    step = StepClause(**_parse_fields(_section(data, path), _STEP_KEYS, path))
    return None if step.is_empty else step


def _parse_rule(data: Any, path: str) -> AdjustmentRule:
    section = _section(data, path)
    _check_keys(section, _RULE_KEYS, path)
    when = WhenClause(
        **_parse_fields(_section(section.get("When"), f"{path}.When"), _WHEN_KEYS, f"{path}.When")
    )
    return AdjustmentRule(
        when=when,
        by=_parse_step(section.get("By"), f"{path}.By"),
        to=_parse_step(section.get("To"), f"{path}.To"),
    )


def _parse_capacity_policy(data: Any, path: str) -> CapacityPolicy:
    section = _section(data, path)
    _check_keys(section, _CAPACITY_KEYS, path)
    minimum = _number(section.get("Min"), f"{path}.Min")
    maximum = _number(section.get("Max"), f"{path}.Max")
    if minimum is not None and maximum is not None and minimum > maximum:
        raise PolicyConfigError(f"{path}.Min ({minimum}) exceeds {path}.Max ({maximum})")
    return CapacityPolicy(
        minimum=minimum,
        maximum=maximum,
        increment=_parse_rule(section.get("Increment"), f"{path}.Increment"),
        decrement=_parse_rule(section.get("Decrement"), f"{path}.Decrement"),
    )


def _default_capacity_policy() -> CapacityPolicy:
    return CapacityPolicy(
        minimum=DEFAULT_MIN_CAPACITY_UNITS,
        maximum=DEFAULT_MAX_CAPACITY_UNITS,
        increment=AdjustmentRule(
            when=WhenClause(utilisation_is_above_percent=DEFAULT_INCREMENT_ABOVE_PERCENT),
            by=StepClause(units=DEFAULT_INCREMENT_BY_UNITS),
            to=StepClause(consumed_percent=DEFAULT_INCREMENT_TO_CONSUMED_PERCENT),
        ),
        decrement=AdjustmentRule(
            when=WhenClause(
                utilisation_is_below_percent=DEFAULT_DECREMENT_BELOW_PERCENT,
                after_last_increment_minutes=DEFAULT_DECREMENT_COOLDOWN_MINUTES,
                after_last_decrement_minutes=DEFAULT_DECREMENT_COOLDOWN_MINUTES,
                unit_adjustment_greater_than=DEFAULT_DECREMENT_MIN_UNIT_ADJUSTMENT,
            ),
            to=StepClause(consumed_percent=DEFAULT_DECREMENT_TO_CONSUMED_PERCENT),
        ),
    )


DEFAULT_SCALING_POLICY = ScalingPolicy(
    read_capacity=_default_capacity_policy(),
    write_capacity=_default_capacity_policy(),
)
