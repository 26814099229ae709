"""Adjustment context construction.

One generic builder serves the four call shapes (read/write x
increment/decrement); the capacity type picks the throughput values and
bounds, the direction picks the rule.
"""

from typing import Optional, Union

from .config import AdjustmentDirection, CapacityType, ScalingPolicy
from .exceptions import require
from .models import AdjustmentContext, ThroughputSample


def utilisation_percent(consumed: float, provisioned: float) -> Optional[float]:
    """Consumed as a percentage of provisioned; None when provisioned is zero."""
    if provisioned == 0:
        return None
    return (consumed / provisioned) * 100.0


def build_adjustment_context(
    sample: ThroughputSample,
    policy: ScalingPolicy,
    capacity_type: Union[CapacityType, str],
    direction: Union[AdjustmentDirection, str],
) -> AdjustmentContext:
    require(sample, "sample")
    require(policy, "policy")
    capacity_type = CapacityType(capacity_type)
    direction = AdjustmentDirection(direction)

    capacity_policy = policy.for_capacity_type(capacity_type)
    provisioned = sample.provisioned(capacity_type)
    consumed = sample.consumed(capacity_type)

    return AdjustmentContext(
        resource_name=sample.resource_name,
        index_name=sample.index_name,
        capacity_type=capacity_type,
        direction=direction,
        provisioned_value=provisioned,
        consumed_value=consumed,
        utilisation_percent=utilisation_percent(consumed, provisioned),
        bounds=capacity_policy.bounds,
        rule=capacity_policy.rule_for(direction),
    )
