"""Pytest configuration and shared fixtures."""

import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.provisioning.clock import FixedClock  # noqa: E402
from src.provisioning.config import (  # noqa: E402
    AdjustmentRule,
    CapacityPolicy,
    ScalingPolicy,
    WhenClause,
)
from src.provisioning.models import ThroughputSample  # noqa: E402
from src.settings import get_settings  # noqa: E402

NOW = "2026-03-10T12:00:00Z"


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo configure_logging() calls made by a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def reset_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def make_sample():
    """Factory for samples; read/write values default to the same numbers."""

    def _make(
        provisioned=100,
        consumed=50,
        write_provisioned=None,
        write_consumed=None,
        name="orders",
        **kwargs,
    ):
        return ThroughputSample(
            resource_name=name,
            provisioned_read_capacity_units=provisioned,
            consumed_read_capacity_units=consumed,
            provisioned_write_capacity_units=(
                provisioned if write_provisioned is None else write_provisioned
            ),
            consumed_write_capacity_units=consumed if write_consumed is None else write_consumed,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_policy():
    """Factory for a policy whose increment and decrement rules are identical."""

    def _make(
        minimum=None,
        maximum=None,
        above=None,
        below=None,
        increment_minutes=None,
        decrement_minutes=None,
        unit_adjustment=None,
        by=None,
        to=None,
    ):
        rule = AdjustmentRule(
            when=WhenClause(
                utilisation_is_above_percent=above,
                utilisation_is_below_percent=below,
                after_last_increment_minutes=increment_minutes,
                after_last_decrement_minutes=decrement_minutes,
                unit_adjustment_greater_than=unit_adjustment,
            ),
            by=by,
            to=to,
        )
        capacity = CapacityPolicy(minimum=minimum, maximum=maximum, increment=rule, decrement=rule)
        return ScalingPolicy(read_capacity=capacity, write_capacity=capacity)

    return _make
