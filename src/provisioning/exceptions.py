"""Exception hierarchy for provisioned throughput autoscaling.

PreconditionViolation is not a ProvisioningError; handlers that isolate
per-resource failures let it propagate.
"""

from typing import Optional


class PreconditionViolation(Exception):
    """Raised when a required argument (sample, policy, context) is missing."""

    def __init__(self, parameter: str):
        self.parameter = parameter
        super().__init__(f"Parameter '{parameter}' is not set")


def require(value, parameter: str):
    """Return value, or raise PreconditionViolation when it is None."""
    if value is None:
        raise PreconditionViolation(parameter)
    return value


class ProvisioningError(Exception):
    """Base class for runtime autoscaling errors."""


class PolicyConfigError(ProvisioningError, ValueError):
    """Raised when a scaling policy mapping is malformed."""


class EvaluationError(ProvisioningError):
    """Raised when a collaborator fails while evaluating one resource."""

    def __init__(
        self,
        resource_id: str,
        message: str,
        capacity_type: Optional[str] = None,
        direction: Optional[str] = None,
    ):
        self.resource_id = resource_id
        self.capacity_type = capacity_type
        self.direction = direction
        scope = "/".join(p for p in (capacity_type, direction) if p)
        prefix = f"{resource_id} [{scope}]" if scope else resource_id
        super().__init__(f"{prefix}: {message}")
