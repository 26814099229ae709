"""Cycle Context Management.

Thread-safe logging context using contextvars for binding cycle IDs,
correlation IDs and the resource being evaluated to log entries.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator


_cycle_id_var: ContextVar[str] = ContextVar("cycle_id", default="")
_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
_resource_var: ContextVar[str] = ContextVar("resource", default="")
_extra_context_var: ContextVar[dict] = ContextVar("extra_context", default={})


def generate_cycle_id() -> str:
    """Generate a unique cycle ID using UUID4."""
    return str(uuid.uuid4())


def get_cycle_id() -> str:
    return _cycle_id_var.get()


def get_correlation_id() -> str:
    return _correlation_id_var.get()


def get_resource() -> str:
    return _resource_var.get()


def get_context_dict() -> dict[str, Any]:
    """Get all context variables as a dictionary for log binding."""
    ctx = {}
    cycle_id = _cycle_id_var.get()
    if cycle_id:
        ctx["cycle_id"] = cycle_id
    corr_id = _correlation_id_var.get()
    if corr_id:
        ctx["correlation_id"] = corr_id
    resource = _resource_var.get()
    if resource:
        ctx["resource"] = resource
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


@contextmanager
def resource_scope(resource: str) -> Iterator[None]:
    """Bind the resource being evaluated for the duration of the block."""
    token = _resource_var.set(resource)
    try:
        yield
    finally:
        _resource_var.reset(token)


@dataclass
class CycleContext:
    """Context manager for cycle-scoped logging context.

    Binds cycle_id and correlation_id to all log entries within the
    context. Automatically cleans up on exit.

    Example:
        with CycleContext() as ctx:
            logger.info("cycle started")  # includes cycle_id
    """

    cycle_id: str = ""
    correlation_id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    _tokens: list = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.cycle_id:
            self.cycle_id = generate_cycle_id()
        if not self.correlation_id:
            self.correlation_id = self.cycle_id

    def __enter__(self) -> "CycleContext":
        self._tokens = [
            (_cycle_id_var, _cycle_id_var.set(self.cycle_id)),
            (_correlation_id_var, _correlation_id_var.set(self.correlation_id)),
            (_extra_context_var, _extra_context_var.set(self.extra.copy())),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since context was created."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    def bind(self, **kwargs: Any) -> None:
        """Add extra key-value pairs to the context."""
        current = _extra_context_var.get()
        _extra_context_var.set({**current, **kwargs})
        self.extra.update(kwargs)
