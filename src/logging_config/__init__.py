"""Structured Logging & Cycle Tracing.

Provides structured JSON logging, cycle ID propagation,
and performance timing for the autoscaler.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import CycleContext, generate_cycle_id, resource_scope
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import configure_logging

__all__ = [
    "CycleContext",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "PerformanceTimer",
    "configure_logging",
    "generate_cycle_id",
    "log_performance",
    "resource_scope",
]
