"""Threshold evaluators.

Each predicate is independent and returns False when the relevant policy
knob is not configured. Percentage predicates recompute utilisation from the
context's raw values and return False when provisioned capacity is zero.
"""

from .context import utilisation_percent
from .exceptions import require
from .models import AdjustmentContext


def is_above_max(context: AdjustmentContext) -> bool:
    require(context, "context")
    if context.bounds.maximum is None:
        return False
    return context.consumed_value > context.bounds.maximum


def is_below_min(context: AdjustmentContext) -> bool:
    require(context, "context")
    if context.bounds.minimum is None:
        return False
    return context.consumed_value < context.bounds.minimum


def is_above_threshold(context: AdjustmentContext) -> bool:
    require(context, "context")
    threshold = context.rule.when.utilisation_is_above_percent
    if threshold is None:
        return False
    utilisation = utilisation_percent(context.consumed_value, context.provisioned_value)
    if utilisation is None:
        return False
    return utilisation > threshold


def is_below_threshold(context: AdjustmentContext) -> bool:
    require(context, "context")
    threshold = context.rule.when.utilisation_is_below_percent
    if threshold is None:
        return False
    utilisation = utilisation_percent(context.consumed_value, context.provisioned_value)
    if utilisation is None:
        return False
    return utilisation < threshold
