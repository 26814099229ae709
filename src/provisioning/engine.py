"""Capacity adjustment decision engine.

Merges "is an adjustment wanted" (any threshold signal fires) with "is an
adjustment allowed" (grace periods elapsed and, for decrements, the safeguard
agrees) into one verdict per (resource, capacity type, direction).

Example:
    engine = DecisionEngine(safeguard=RateLimitedDecrement())
    if engine.evaluate_increment(sample, policy, CapacityType.READ):
        context = build_adjustment_context(sample, policy, "read", "increment")
        new_units = engine.compute_adjusted_value(context)
"""

import logging
from typing import Optional, Union

from .calculator import CapacityCalculator, StepCapacityCalculator
from .clock import Clock, SystemClock
from .config import AdjustmentDirection, CapacityType, ScalingPolicy
from .context import build_adjustment_context
from .exceptions import EvaluationError, PreconditionViolation, require
from .grace_period import is_after_grace_period
from .models import AdjustmentContext, DecisionRecord, ThroughputSample
from .safeguard import AllowAllDecrements, DecrementSafeguard
from .sinks import DecisionSink, LoggingDecisionSink
from .strategies import DefaultPolicyLookup, PolicyLookup
from .thresholds import (
    is_above_max,
    is_above_threshold,
    is_below_min,
    is_below_threshold,
)

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Evaluates adjustment verdicts and delegates target values.

    All collaborators are injected; evaluation itself keeps no state between
    calls, so one engine may serve many resources and threads at once.
    """

    def __init__(
        self,
        policy_lookup: Optional[PolicyLookup] = None,
        calculator: Optional[CapacityCalculator] = None,
        safeguard: Optional[DecrementSafeguard] = None,
        sink: Optional[DecisionSink] = None,
        clock: Optional[Clock] = None,
    ):
        self.policy_lookup = policy_lookup or DefaultPolicyLookup()
        self.calculator = calculator or StepCapacityCalculator()
        self.safeguard = safeguard or AllowAllDecrements()
        self.sink = sink or LoggingDecisionSink()
        self.clock = clock or SystemClock()
        if getattr(self.safeguard, "clock", False) is None:
            self.safeguard.clock = self.clock

    # ── Public API ───────────────────────────────────────────────────

    def evaluate_increment(
        self,
        sample: ThroughputSample,
        policy: Optional[ScalingPolicy],
        capacity_type: Union[CapacityType, str],
    ) -> bool:
        record = self.evaluate(sample, capacity_type, AdjustmentDirection.INCREMENT, policy)
        return record.is_adjustment_required

    def evaluate_decrement(
        self,
        sample: ThroughputSample,
        policy: Optional[ScalingPolicy],
        capacity_type: Union[CapacityType, str],
    ) -> bool:
        record = self.evaluate(sample, capacity_type, AdjustmentDirection.DECREMENT, policy)
        return record.is_adjustment_required

    def is_adjustment_required(
        self,
        sample: ThroughputSample,
        capacity_type: Union[CapacityType, str],
        direction: Union[AdjustmentDirection, str],
        policy: Optional[ScalingPolicy] = None,
    ) -> bool:
        return self.evaluate(sample, capacity_type, direction, policy).is_adjustment_required

    def compute_adjusted_value(self, context: AdjustmentContext) -> float:
        """New target capacity for a context whose adjustment was decided."""
        require(context, "context")
        try:
            return self.calculator.calculate(context)
        except PreconditionViolation:
            raise
        except Exception as exc:
            raise EvaluationError(
                context.resource_id,
                f"capacity calculation failed: {exc}",
                capacity_type=context.capacity_type.value,
                direction=context.direction.value,
            ) from exc

    def calculate_adjusted_value(
        self,
        sample: ThroughputSample,
        capacity_type: Union[CapacityType, str],
        direction: Union[AdjustmentDirection, str],
        policy: Optional[ScalingPolicy] = None,
    ) -> float:
        context = self.build_context(sample, capacity_type, direction, policy)
        return self.compute_adjusted_value(context)

    def build_context(
        self,
        sample: ThroughputSample,
        capacity_type: Union[CapacityType, str],
        direction: Union[AdjustmentDirection, str],
        policy: Optional[ScalingPolicy] = None,
    ) -> AdjustmentContext:
        require(sample, "sample")
        if policy is None:
            policy = self.resolve_policy(sample)
        return build_adjustment_context(sample, policy, capacity_type, direction)

    def evaluate(
        self,
        sample: ThroughputSample,
        capacity_type: Union[CapacityType, str],
        direction: Union[AdjustmentDirection, str],
        policy: Optional[ScalingPolicy] = None,
    ) -> DecisionRecord:
        """Run every evaluator and gate, emit the record and return it."""
        require(sample, "sample")
        if policy is None:
            policy = self.resolve_policy(sample)
        context = build_adjustment_context(sample, policy, capacity_type, direction)
        now = self.clock.now()

        if context.utilisation_percent is None:
            logger.warning(
                f"{context.resource_id} {context.capacity_type.value}: provisioned capacity is 0, "
                "skipping adjustment"
            )

        # Wanted: any one signal is enough
        above_max = is_above_max(context)
        below_min = is_below_min(context)
        above_threshold = is_above_threshold(context)
        below_threshold = is_below_threshold(context)
        wanted = above_max or below_min or above_threshold or below_threshold
        if context.utilisation_percent is None:
            # Nothing provisioned for this capacity type: skip it
            wanted = False

        # Allowed: cooldowns from the active rule plus the decrement quota
        when = context.rule.when
        after_decrease = is_after_grace_period(
            sample.last_decrease_at, when.after_last_decrement_minutes, now
        )
        after_increase = is_after_grace_period(
            sample.last_increase_at, when.after_last_increment_minutes, now
        )
        decrement_allowed = True
        if context.is_decrement:
            decrement_allowed = self._consult_safeguard(sample, policy, context)
        allowed = after_decrease and after_increase and decrement_allowed

        record = DecisionRecord(
            context=context,
            is_above_max=above_max,
            is_below_min=below_min,
            is_above_threshold=above_threshold,
            is_below_threshold=below_threshold,
            is_after_last_decrease_grace_period=after_decrease,
            is_after_last_increase_grace_period=after_increase,
            is_decrement_allowed=decrement_allowed,
            is_adjustment_wanted=wanted,
            is_adjustment_allowed=allowed,
            evaluated_at=now,
        )
        self._emit(record)
        return record

    def resolve_policy(self, sample: ThroughputSample) -> ScalingPolicy:
        require(sample, "sample")
        try:
            return self.policy_lookup.policy_for(sample)
        except PreconditionViolation:
            raise
        except Exception as exc:
            raise EvaluationError(sample.resource_id, f"policy lookup failed: {exc}") from exc

    # ── Internals ────────────────────────────────────────────────────

    def _consult_safeguard(
        self,
        sample: ThroughputSample,
        policy: ScalingPolicy,
        context: AdjustmentContext,
    ) -> bool:
        capacity_type = context.capacity_type

        def calculate_decremented_value(s: ThroughputSample) -> float:
            decrement_context = build_adjustment_context(
                s, policy, capacity_type, AdjustmentDirection.DECREMENT
            )
            return self.calculator.calculate(decrement_context)

        try:
            return bool(
                self.safeguard.is_decrement_allowed(sample, context, calculate_decremented_value)
            )
        except PreconditionViolation:
            raise
        except Exception as exc:
            raise EvaluationError(
                context.resource_id,
                f"decrement safeguard failed: {exc}",
                capacity_type=capacity_type.value,
                direction=context.direction.value,
            ) from exc

    def _emit(self, record: DecisionRecord) -> None:
        try:
            self.sink.emit(record)
        except Exception:
            logger.warning(
                f"Failed to emit decision record for {record.context.resource_id}",
                exc_info=True,
            )
