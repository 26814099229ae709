"""Decrement safeguards.

The store only permits a limited number of capacity decreases per UTC day.
A safeguard answers whether performing a decrement now keeps the resource
within that quota; the decision engine consults it for decrements only.
"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Optional, Protocol

from .clock import Clock, SystemClock
from .config import DEFAULT_DECREMENTS_PER_DAY
from .exceptions import require
from .models import AdjustmentContext, ThroughputSample

logger = logging.getLogger(__name__)

DecrementCalculator = Callable[[ThroughputSample], float]


class DecrementSafeguard(Protocol):
    def is_decrement_allowed(
        self,
        sample: ThroughputSample,
        context: AdjustmentContext,
        calculate_decremented_value: DecrementCalculator,
    ) -> bool:
        ...


class AllowAllDecrements:
    """Safeguard that never blocks a decrement."""

    def is_decrement_allowed(
        self,
        sample: ThroughputSample,
        context: AdjustmentContext,
        calculate_decremented_value: DecrementCalculator,
    ) -> bool:
        return True


class RateLimitedDecrement:
    """Spreads the daily decrement quota evenly over the rest of the day.

    With ``n`` decrements per day and ``used`` already spent, the time left
    after the anchor (the later of the last decrease and today's midnight) is
    split into ``n + 1 - used`` slots and the next decrement opens one slot
    after the anchor. Once the quota is spent nothing opens until tomorrow.
    Decrements smaller than the rule's ``unit_adjustment_greater_than`` are
    refused so they do not waste a slot.
    """

    def __init__(
        self,
        decrements_per_day: int = DEFAULT_DECREMENTS_PER_DAY,
        clock: Optional[Clock] = None,
    ):
        if decrements_per_day < 1:
            raise ValueError("decrements_per_day must be >= 1")
        self.decrements_per_day = decrements_per_day
        # None adopts the clock of the engine it is handed to
        self.clock = clock

    def _now(self) -> datetime:
        return (self.clock or SystemClock()).now()

    def next_allowed_decrement_at(self, sample: ThroughputSample) -> datetime:
        require(sample, "sample")
        now = self._now()
        start_of_today = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
        start_of_tomorrow = start_of_today + timedelta(days=1)

        used = sample.number_of_decreases_today
        if used >= self.decrements_per_day:
            return start_of_tomorrow

        anchor = start_of_today
        if sample.last_decrease_at is not None and sample.last_decrease_at > start_of_today:
            anchor = sample.last_decrease_at

        slots = self.decrements_per_day + 1 - used
        return anchor + (start_of_tomorrow - anchor) / slots

    def is_decrement_allowed(
        self,
        sample: ThroughputSample,
        context: AdjustmentContext,
        calculate_decremented_value: DecrementCalculator,
    ) -> bool:
        require(sample, "sample")
        require(context, "context")

        next_allowed = self.next_allowed_decrement_at(sample)
        if next_allowed > self._now():
            logger.debug(
                f"{context.resource_id} {context.capacity_type.value} decrement "
                f"rate limited until {next_allowed.isoformat()}"
            )
            return False

        threshold = context.rule.when.unit_adjustment_greater_than
        if threshold is not None:
            adjustment = abs(context.provisioned_value) - abs(calculate_decremented_value(sample))
            if adjustment <= threshold:
                logger.debug(
                    f"{context.resource_id} {context.capacity_type.value} decrement of "
                    f"{adjustment:g} units is not greater than {threshold:g}"
                )
                return False

        return True
