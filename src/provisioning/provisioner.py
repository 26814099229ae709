"""Monitoring cycle runner.

Lists resources, loads their throughput samples, asks the decision engine
whether each capacity type should move and by how much, then applies the
resulting updates. A failing resource is recorded in the cycle report and
never stops the others.
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from src.logging_config import CycleContext, PerformanceTimer, log_performance, resource_scope

from .config import AdjustmentDirection, CapacityType
from .engine import DecisionEngine
from .exceptions import PreconditionViolation, ProvisioningError, require
from .models import CycleReport, DecisionRecord, ThroughputSample, ThroughputUpdate
from .sources import SampleSource, ThroughputUpdater
from .strategies import ResourceLister

logger = logging.getLogger(__name__)

DEFAULT_SLOW_CYCLE_MS = 5000.0


@dataclass
class _ResourceOutcome:
    """Everything one resource contributed to the cycle."""

    records: List[DecisionRecord] = field(default_factory=list)
    planned: List[ThroughputUpdate] = field(default_factory=list)
    applied: List[ThroughputUpdate] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


class Provisioner:
    """Runs monitoring cycles over every listed resource.

    Example:
        provisioner = Provisioner(
            StaticResourceLister(["orders"]),
            InMemorySampleSource(samples),
            DecisionEngine(),
            dry_run=True,
        )
        report = provisioner.run_cycle()
    """

    def __init__(
        self,
        lister: ResourceLister,
        sample_source: SampleSource,
        engine: Optional[DecisionEngine] = None,
        updater: Optional[ThroughputUpdater] = None,
        dry_run: bool = False,
        max_workers: int = 1,
        slow_cycle_ms: float = DEFAULT_SLOW_CYCLE_MS,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.lister = lister
        self.sample_source = sample_source
        self.engine = engine or DecisionEngine()
        self.updater = updater
        # Without an updater there is nothing to apply
        self.dry_run = dry_run or updater is None
        self.max_workers = max_workers
        self.slow_cycle_ms = slow_cycle_ms

    # ── Cycle ────────────────────────────────────────────────────────

    def run_cycle(self, correlation_id: str = "") -> CycleReport:
        """Evaluate every listed resource once.

        ``correlation_id`` tags the cycle's log lines for an outer caller and
        defaults to the cycle id.
        """
        with CycleContext(correlation_id=correlation_id) as ctx, PerformanceTimer(
            "provisioning cycle", self.slow_cycle_ms
        ):
            ctx.bind(dry_run=self.dry_run)
            report = CycleReport(cycle_id=ctx.cycle_id, dry_run=self.dry_run)
            resource_names = self.lister.list_resources()
            logger.info(f"Cycle started for {len(resource_names)} resources (dry_run={self.dry_run})")

            for outcome in self._process_all(resource_names):
                report.records.extend(outcome.records)
                report.planned_updates.extend(outcome.planned)
                report.applied_updates.extend(outcome.applied)
                report.failures.update(outcome.failures)

            report.finished_at = datetime.now(timezone.utc)
            summary = report.summary()
            log = logger.warning if report.failures else logger.info
            log(
                f"Cycle finished: {summary['planned_updates']} planned, "
                f"{summary['applied_updates']} applied, {summary['failures']} failed",
                extra={"extra_data": summary, "duration_ms": round(ctx.elapsed_ms, 2)},
            )
            return report

    def plan_update(self, sample: ThroughputSample) -> Tuple[List[DecisionRecord], Optional[ThroughputUpdate]]:
        """Decision records and the merged update (if any) for one sample.

        Per capacity type an increment is checked first; a decrement is only
        considered when no increment is required. Targets equal to the
        current provisioned value are dropped.
        """
        require(sample, "sample")
        policy = self.engine.resolve_policy(sample)
        records: List[DecisionRecord] = []
        update = ThroughputUpdate(
            resource_name=sample.resource_name,
            index_name=sample.index_name,
            previous_read_capacity_units=sample.provisioned_read_capacity_units,
            previous_write_capacity_units=sample.provisioned_write_capacity_units,
        )

        for capacity_type in CapacityType:
            new_value = None
            for direction in AdjustmentDirection:
                record = self.engine.evaluate(sample, capacity_type, direction, policy)
                records.append(record)
                if record.is_adjustment_required:
                    new_value = self.engine.compute_adjusted_value(record.context)
                    break

            if new_value is None or new_value == sample.provisioned(capacity_type):
                continue
            if capacity_type == CapacityType.READ:
                update.read_capacity_units = new_value
            else:
                update.write_capacity_units = new_value

        return records, None if update.is_empty else update

    # ── Internals ────────────────────────────────────────────────────

    def _process_all(self, resource_names: List[str]) -> List[_ResourceOutcome]:
        if self.max_workers == 1 or len(resource_names) <= 1:
            return [self._process_resource(name) for name in resource_names]

        # Each task runs in a copy of the cycle context so log lines keep cycle_id
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(contextvars.copy_context().run, self._process_resource, name)
                for name in resource_names
            ]
            return [future.result() for future in futures]

    @log_performance(threshold_ms=1000.0)
    def _process_resource(self, resource_name: str) -> _ResourceOutcome:
        outcome = _ResourceOutcome()
        with resource_scope(resource_name):
            try:
                samples = self.sample_source.get_samples(resource_name)
            except PreconditionViolation:
                raise
            except Exception as exc:
                logger.error(f"Failed to load samples for {resource_name}: {exc}", exc_info=True)
                outcome.failures[resource_name] = f"sample loading failed: {exc}"
                return outcome

            for sample in samples:
                try:
                    records, update = self.plan_update(sample)
                except ProvisioningError as exc:
                    logger.error(f"Failed to evaluate {sample.resource_id}: {exc}", exc_info=True)
                    outcome.failures[sample.resource_id] = str(exc)
                    continue

                outcome.records.extend(records)
                if update is None:
                    continue
                outcome.planned.append(update)
                if not self.dry_run and self._apply(update, outcome):
                    outcome.applied.append(update)

        return outcome

    def _apply(self, update: ThroughputUpdate, outcome: _ResourceOutcome) -> bool:
        try:
            self.updater.apply(update)
        except PreconditionViolation:
            raise
        except Exception as exc:
            logger.error(f"Failed to update {update.resource_id}: {exc}", exc_info=True)
            outcome.failures[update.resource_id] = f"update failed: {exc}"
            return False
        logger.info(
            f"Updated {update.resource_id}",
            extra={"extra_data": update.to_dict()},
        )
        return True
