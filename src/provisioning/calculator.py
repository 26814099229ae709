"""Capacity value calculation for adjustments that have been decided."""

import logging
import math
from typing import Protocol

from .exceptions import require
from .models import AdjustmentContext

logger = logging.getLogger(__name__)

MIN_CAPACITY_UNITS = 1


class CapacityCalculator(Protocol):
    def calculate(self, context: AdjustmentContext) -> float:
        ...


class StepCapacityCalculator:
    """Applies a rule's "by" step and/or "to" target, clamped to bounds.

    - Provisioned capacity already outside the bounds snaps to the bound.
    - "by" adds (increment) or subtracts (decrement) a step amount.
    - "to" sets an absolute target, usually a percentage of consumed.
    - With both configured the larger candidate wins, which is the most
      aggressive increase and the most conservative decrease.
    - A decrement is capped at the provisioned value and an increment is
      floored at it.
    - The result is clamped, rounded up to a whole unit and never below 1.
    """

    def calculate(self, context: AdjustmentContext) -> float:
        require(context, "context")
        provisioned = context.provisioned_value
        consumed = context.consumed_value
        bounds = context.bounds
        rule = context.rule

        if bounds.minimum is not None and provisioned < bounds.minimum:
            return self._finalize(bounds.minimum)
        if bounds.maximum is not None and provisioned > bounds.maximum:
            return self._finalize(bounds.maximum)

        candidates = []
        if rule.by is not None:
            step = rule.by.amount(consumed, provisioned)
            candidates.append(provisioned + step if context.is_increment else provisioned - step)
        if rule.to is not None:
            candidates.append(rule.to.amount(consumed, provisioned))

        if not candidates:
            logger.debug(
                f"{context.resource_id} {context.capacity_type.value} {context.direction.value}: "
                "no step configured, keeping provisioned value"
            )
            return self._finalize(provisioned)

        value = max(candidates)
        # A decrement never raises capacity and an increment never lowers it
        if context.is_increment:
            value = max(value, provisioned)
        else:
            value = min(value, provisioned)
        if bounds.minimum is not None:
            value = max(value, bounds.minimum)
        if bounds.maximum is not None:
            value = min(value, bounds.maximum)
        return self._finalize(value)

    @staticmethod
    def _finalize(value: float) -> float:
        return float(max(math.ceil(value), MIN_CAPACITY_UNITS))
