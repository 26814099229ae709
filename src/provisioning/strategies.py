"""Pluggable resource discovery and policy lookup strategies."""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Protocol, Union

from .config import DEFAULT_SCALING_POLICY, ScalingPolicy
from .exceptions import PolicyConfigError, require
from .models import ThroughputSample

logger = logging.getLogger(__name__)

DEFAULT_POLICY_KEY = "default"
_POLICY_KEYS = {"ReadCapacity", "WriteCapacity"}


class ResourceLister(Protocol):
    def list_resources(self) -> List[str]:
        ...


class PolicyLookup(Protocol):
    def policy_for(self, sample: ThroughputSample) -> ScalingPolicy:
        ...


class StaticResourceLister:
    """Fixed list of table names."""

    def __init__(self, resource_names: Iterable[str]):
        self._names = list(dict.fromkeys(resource_names))

    def list_resources(self) -> List[str]:
        return list(self._names)


class DefaultPolicyLookup:
    """Same policy for every resource."""

    def __init__(self, policy: ScalingPolicy = DEFAULT_SCALING_POLICY):
        self._policy = policy

    def policy_for(self, sample: ThroughputSample) -> ScalingPolicy:
        require(sample, "sample")
        return self._policy


class MappingPolicyLookup:
    """Per-resource policies with a fallback.

    Keys are resource ids (``table`` or ``table/index``). An index without
    its own entry inherits its table's policy before falling back.
    """

    def __init__(
        self,
        policies: Mapping[str, ScalingPolicy],
        default: Optional[ScalingPolicy] = DEFAULT_SCALING_POLICY,
    ):
        self._policies = dict(policies)
        self._default = default

    def policy_for(self, sample: ThroughputSample) -> ScalingPolicy:
        require(sample, "sample")
        for key in (sample.resource_id, sample.resource_name):
            if key in self._policies:
                return self._policies[key]
        if self._default is None:
            raise KeyError(f"No scaling policy configured for {sample.resource_id}")
        return self._default


def load_policy_lookup(path: Union[str, Path]) -> PolicyLookup:
    """Policy lookup from a JSON file.

    The file holds either a single policy (``ReadCapacity`` / ``WriteCapacity``
    at the top level) applied to every resource, or a mapping of resource ids
    to policies with an optional ``"default"`` entry.
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise PolicyConfigError(f"{path}: expected a JSON object")

    if set(data) & _POLICY_KEYS:
        logger.info(f"Loaded single scaling policy from {path}")
        return DefaultPolicyLookup(ScalingPolicy.from_dict(data))

    policies = {key: ScalingPolicy.from_dict(value) for key, value in data.items()}
    default = policies.pop(DEFAULT_POLICY_KEY, DEFAULT_SCALING_POLICY)
    logger.info(f"Loaded {len(policies)} resource scaling policies from {path}")
    return MappingPolicyLookup(policies, default=default)
