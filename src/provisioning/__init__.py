"""Provisioned Throughput Autoscaling.

Decides when a table or index should have its read/write capacity raised
or lowered and computes the new target.
"""

from .config import (
    CapacityType,
    AdjustmentDirection,
    WhenClause,
    StepClause,
    AdjustmentRule,
    CapacityBounds,
    CapacityPolicy,
    ScalingPolicy,
    DEFAULT_SCALING_POLICY,
)
from .exceptions import (
    PreconditionViolation,
    ProvisioningError,
    PolicyConfigError,
    EvaluationError,
)
from .models import (
    ThroughputSample,
    AdjustmentContext,
    DecisionRecord,
    ThroughputUpdate,
    CycleReport,
)
from .clock import Clock, SystemClock, FixedClock
from .context import build_adjustment_context, utilisation_percent
from .thresholds import (
    is_above_max,
    is_below_min,
    is_above_threshold,
    is_below_threshold,
)
from .grace_period import is_after_grace_period
from .calculator import CapacityCalculator, StepCapacityCalculator
from .safeguard import DecrementSafeguard, AllowAllDecrements, RateLimitedDecrement
from .sinks import (
    DecisionSink,
    LoggingDecisionSink,
    InMemoryDecisionSink,
    CompositeDecisionSink,
)
from .strategies import (
    ResourceLister,
    PolicyLookup,
    StaticResourceLister,
    DefaultPolicyLookup,
    MappingPolicyLookup,
    load_policy_lookup,
)
from .engine import DecisionEngine
from .consumption import ConsumedCapacityEstimator, MetricStatistic, WindowAggregation
from .sources import (
    SampleSource,
    ThroughputUpdater,
    InMemorySampleSource,
    JsonSampleSource,
)
from .provisioner import Provisioner
from .report import records_to_frame, updates_to_frame

__all__ = [
    # Config
    "CapacityType",
    "AdjustmentDirection",
    "WhenClause",
    "StepClause",
    "AdjustmentRule",
    "CapacityBounds",
    "CapacityPolicy",
    "ScalingPolicy",
    "DEFAULT_SCALING_POLICY",
    # Errors
    "PreconditionViolation",
    "ProvisioningError",
    "PolicyConfigError",
    "EvaluationError",
    # Models
    "ThroughputSample",
    "AdjustmentContext",
    "DecisionRecord",
    "ThroughputUpdate",
    "CycleReport",
    # Clock
    "Clock",
    "SystemClock",
    "FixedClock",
    # Evaluation
    "build_adjustment_context",
    "utilisation_percent",
    "is_above_max",
    "is_below_min",
    "is_above_threshold",
    "is_below_threshold",
    "is_after_grace_period",
    "DecisionEngine",
    # Collaborators
    "CapacityCalculator",
    "StepCapacityCalculator",
    "DecrementSafeguard",
    "AllowAllDecrements",
    "RateLimitedDecrement",
    "DecisionSink",
    "LoggingDecisionSink",
    "InMemoryDecisionSink",
    "CompositeDecisionSink",
    "ResourceLister",
    "PolicyLookup",
    "StaticResourceLister",
    "DefaultPolicyLookup",
    "MappingPolicyLookup",
    "load_policy_lookup",
    # Cycle
    "ConsumedCapacityEstimator",
    "MetricStatistic",
    "WindowAggregation",
    "SampleSource",
    "ThroughputUpdater",
    "InMemorySampleSource",
    "JsonSampleSource",
    "Provisioner",
    "records_to_frame",
    "updates_to_frame",
]
