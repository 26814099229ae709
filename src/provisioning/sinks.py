"""Observability sinks for decision records."""

import logging
import threading
from typing import List, Protocol, Sequence

from .models import DecisionRecord

logger = logging.getLogger(__name__)


class DecisionSink(Protocol):
    def emit(self, record: DecisionRecord) -> None:
        ...


def _flag(value: bool) -> str:
    return "yes" if value else "no"


class LoggingDecisionSink:
    """Writes one log line per decision.

    Required adjustments are logged at INFO, everything else at DEBUG. The
    flat record travels in ``extra_data`` for the JSON formatter.
    """

    def __init__(self, logger_name: str = __name__):
        self._logger = logging.getLogger(logger_name)

    def emit(self, record: DecisionRecord) -> None:
        ctx = record.context
        level = logging.INFO if record.is_adjustment_required else logging.DEBUG
        if not self._logger.isEnabledFor(level):
            return
        utilisation = (
            f"{ctx.utilisation_percent:.1f}%" if ctx.utilisation_percent is not None else "n/a"
        )
        self._logger.log(
            level,
            f"{ctx.resource_id} {ctx.capacity_type.value} {ctx.direction.value}: "
            f"required={_flag(record.is_adjustment_required)} "
            f"wanted={_flag(record.is_adjustment_wanted)} "
            f"allowed={_flag(record.is_adjustment_allowed)} "
            f"consumed={ctx.consumed_value:g} provisioned={ctx.provisioned_value:g} "
            f"utilisation={utilisation}",
            extra={"extra_data": record.to_dict()},
        )


class InMemoryDecisionSink:
    """Collects records in memory; safe to share across worker threads."""

    def __init__(self):
        self._records: List[DecisionRecord] = []
        self._lock = threading.Lock()

    def emit(self, record: DecisionRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> List[DecisionRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class CompositeDecisionSink:
    """Fans a record out to several sinks, isolating their failures."""

    def __init__(self, sinks: Sequence[DecisionSink]):
        self._sinks = list(sinks)

    def emit(self, record: DecisionRecord) -> None:
        for sink in self._sinks:
            try:
                sink.emit(record)
            except Exception:
                logger.warning(
                    f"Decision sink {type(sink).__name__} failed for "
                    f"{record.context.resource_id}",
                    exc_info=True,
                )
