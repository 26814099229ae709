"""Tests for the monitoring cycle, sample sources, consumption estimates and reports."""

import json
import logging
from datetime import timedelta
from unittest.mock import Mock

import numpy as np
import pytest

from src.logging_config.context import get_context_dict
from src.provisioning.consumption import (
    ConsumedCapacityEstimator,
    MetricStatistic,
    WindowAggregation,
)
from src.provisioning.config import ScalingPolicy
from src.provisioning.engine import DecisionEngine
from src.provisioning.exceptions import PolicyConfigError, PreconditionViolation
from src.provisioning.provisioner import Provisioner
from src.provisioning.report import RECORD_COLUMNS, UPDATE_COLUMNS, records_to_frame, updates_to_frame
from src.provisioning.sinks import InMemoryDecisionSink
from src.provisioning.sources import InMemorySampleSource, JsonSampleSource
from src.provisioning.strategies import (
    DefaultPolicyLookup,
    MappingPolicyLookup,
    StaticResourceLister,
    load_policy_lookup,
)


@pytest.fixture
def samples(make_sample):
    return [
        # read at 90% -> increment to 13, write at 50% -> unchanged
        make_sample(name="orders", provisioned=10, consumed=9, write_provisioned=10, write_consumed=5),
        # read at 10% -> decrement to 5, write at 80% -> increment to 8
        make_sample(name="users", provisioned=50, consumed=5, write_provisioned=5, write_consumed=4),
        make_sample(name="idle", provisioned=10, consumed=5),
    ]


@pytest.fixture
def engine(clock):
    return DecisionEngine(sink=InMemoryDecisionSink(), clock=clock)


def _provisioner(samples, engine, names=None, **kwargs):
    source = InMemorySampleSource(samples)
    lister = StaticResourceLister(names or source.resource_names)
    return Provisioner(lister, source, engine, **kwargs)


def _updates_by_id(updates):
    return {u.resource_id: u for u in updates}


# ── Planning Tests ───────────────────────────────────────────────────


class TestPlanUpdate:
    def test_increment_checked_before_decrement(self, engine, samples):
        records, update = _provisioner(samples, engine).plan_update(samples[0])
        # read: increment required, decrement skipped; write: both evaluated
        assert [(r.context.capacity_type.value, r.context.direction.value) for r in records] == [
            ("read", "increment"),
            ("write", "increment"),
            ("write", "decrement"),
        ]
        assert update.read_capacity_units == 13.0
        assert update.write_capacity_units is None
        assert update.previous_read_capacity_units == 10

    def test_read_and_write_changes_merged(self, engine, samples):
        _, update = _provisioner(samples, engine).plan_update(samples[1])
        assert update.resource_id == "users"
        assert update.read_capacity_units == 5.0
        assert update.write_capacity_units == 8.0

    def test_unchanged_value_dropped(self, engine, make_sample):
        # wanted, but the default maximum clamps the target back to 100
        sample = make_sample(provisioned=100, consumed=99, write_provisioned=10, write_consumed=5)
        records, update = _provisioner([sample], engine).plan_update(sample)
        assert records[0].is_adjustment_required
        assert update is None

    def test_nothing_to_do(self, engine, samples):
        _, update = _provisioner(samples, engine).plan_update(samples[2])
        assert update is None

    def test_zero_provisioned_is_skipped(self, engine, make_sample):
        # on-demand tables report 0 provisioned units
        sample = make_sample(name="ondemand", provisioned=0, consumed=0)
        records, update = _provisioner([sample], engine).plan_update(sample)
        assert update is None
        assert not any(r.is_adjustment_required for r in records)

    def test_decrement_never_raises_capacity(self, engine, clock, make_sample):
        policy = ScalingPolicy.from_dict({
            "ReadCapacity": {
                "Max": 100,
                "Increment": {
                    "When": {"UtilisationIsAbovePercent": 90, "AfterLastIncrementMinutes": 60},
                    "By": {"Units": 10},
                },
                "Decrement": {
                    "When": {"UtilisationIsBelowPercent": 30},
                    "To": {"ConsumedPercent": 100},
                },
            },
        })
        engine.policy_lookup = DefaultPolicyLookup(policy)
        sample = make_sample(
            provisioned=50,
            consumed=150,
            write_provisioned=10,
            write_consumed=5,
            last_increase_at=clock.now() - timedelta(minutes=10),
        )
        records, update = _provisioner([sample], engine).plan_update(sample)
        increment, decrement = records[0], records[1]
        assert increment.is_adjustment_wanted and not increment.is_adjustment_allowed
        # above max makes the decrement wanted, but its target stays at 50
        assert decrement.is_adjustment_required
        assert update is None

    def test_index_sample(self, engine, make_sample):
        sample = make_sample(name="orders", index_name="by-date", provisioned=10, consumed=9,
                             write_provisioned=10, write_consumed=5)
        _, update = _provisioner([sample], engine).plan_update(sample)
        assert update.resource_id == "orders/by-date"
        assert update.index_name == "by-date"

    def test_missing_sample(self, engine, samples):
        with pytest.raises(PreconditionViolation):
            _provisioner(samples, engine).plan_update(None)


# ── Cycle Tests ──────────────────────────────────────────────────────


class TestRunCycle:
    def test_dry_run_plans_without_applying(self, engine, samples):
        updater = Mock()
        report = _provisioner(samples, engine, updater=updater, dry_run=True).run_cycle()
        updater.apply.assert_not_called()
        assert report.dry_run
        assert set(_updates_by_id(report.planned_updates)) == {"orders", "users"}
        assert report.applied_updates == []
        assert report.succeeded

    def test_no_updater_means_dry_run(self, engine, samples):
        report = _provisioner(samples, engine).run_cycle()
        assert report.dry_run
        assert len(report.planned_updates) == 2

    def test_applies_updates(self, engine, samples):
        updater = Mock()
        report = _provisioner(samples, engine, updater=updater).run_cycle()
        assert updater.apply.call_count == 2
        assert report.applied_updates == report.planned_updates
        assert report.cycle_id
        assert report.finished_at >= report.started_at

    def test_report_summary(self, engine, samples):
        report = _provisioner(samples, engine).run_cycle()
        summary = report.summary()
        assert summary["resources_evaluated"] == 3
        assert summary["decisions"] == len(report.records)
        assert summary["planned_updates"] == 2
        assert summary["failures"] == 0

    def test_updater_failure_is_isolated(self, engine, samples, caplog):
        def apply(update):
            if update.resource_name == "orders":
                raise ConnectionError("throttled")

        updater = Mock()
        updater.apply.side_effect = apply
        with caplog.at_level(logging.ERROR):
            report = _provisioner(samples, engine, updater=updater).run_cycle()
        assert "update failed: throttled" in report.failures["orders"]
        assert [u.resource_id for u in report.applied_updates] == ["users"]
        assert not report.succeeded
        assert "Failed to update orders" in caplog.text

    def test_cycle_log_context(self, engine, samples, caplog):
        seen = []
        updater = Mock()
        updater.apply.side_effect = lambda update: seen.append(get_context_dict())
        with caplog.at_level(logging.INFO):
            report = _provisioner(samples, engine, updater=updater).run_cycle(correlation_id="req-42")

        assert {ctx["correlation_id"] for ctx in seen} == {"req-42"}
        assert all(ctx["cycle_id"] == report.cycle_id for ctx in seen)
        assert all(ctx["dry_run"] is False for ctx in seen)
        finished = [r for r in caplog.records if r.getMessage().startswith("Cycle finished")]
        assert finished[0].duration_ms >= 0
        assert get_context_dict() == {}

    def test_sample_loading_failure_is_isolated(self, engine, samples):
        report = _provisioner(samples, engine, names=["ghost", "orders"]).run_cycle()
        assert "sample loading failed" in report.failures["ghost"]
        assert [u.resource_id for u in report.planned_updates] == ["orders"]

    def test_evaluation_failure_is_isolated(self, clock, samples):
        def is_decrement_allowed(sample, context, calculate):
            if sample.resource_name == "users":
                raise RuntimeError("quota down")
            return True

        safeguard = Mock()
        safeguard.is_decrement_allowed.side_effect = is_decrement_allowed
        engine = DecisionEngine(safeguard=safeguard, sink=InMemoryDecisionSink(), clock=clock)
        report = _provisioner(samples, engine).run_cycle()
        assert "decrement safeguard failed" in report.failures["users"]
        assert "orders" in _updates_by_id(report.planned_updates)
        assert "users" not in _updates_by_id(report.planned_updates)

    def test_precondition_violation_propagates(self, engine):
        source = Mock()
        source.get_samples.return_value = [None]
        provisioner = Provisioner(StaticResourceLister(["orders"]), source, engine)
        with pytest.raises(PreconditionViolation):
            provisioner.run_cycle()

    def test_concurrent_cycle_matches_sequential(self, engine, samples):
        sequential = _provisioner(samples, engine, max_workers=1).run_cycle()
        concurrent = _provisioner(samples, engine, max_workers=4).run_cycle()
        assert sorted(u.resource_id for u in concurrent.planned_updates) == sorted(
            u.resource_id for u in sequential.planned_updates
        )
        assert _updates_by_id(concurrent.planned_updates)["users"].to_dict() == (
            _updates_by_id(sequential.planned_updates)["users"].to_dict()
        )
        assert len(concurrent.records) == len(sequential.records)
        assert concurrent.failures == sequential.failures

    def test_invalid_worker_count(self, engine, samples):
        with pytest.raises(ValueError):
            _provisioner(samples, engine, max_workers=0)


# ── Consumption Estimator Tests ──────────────────────────────────────


class TestConsumedCapacityEstimator:
    def test_sum_divided_by_period(self):
        estimator = ConsumedCapacityEstimator(period_seconds=60)
        np.testing.assert_allclose(estimator.per_second([60, 120, 30]), [1.0, 2.0, 0.5])
        assert estimator.estimate([60, 120, 30]) == pytest.approx(2.0)

    def test_mean_aggregation(self):
        estimator = ConsumedCapacityEstimator(period_seconds=60, aggregation="mean")
        assert estimator.estimate([60, 120, 30]) == pytest.approx(3.5 / 3)

    def test_average_taken_as_is(self):
        estimator = ConsumedCapacityEstimator(statistic=MetricStatistic.AVERAGE)
        assert estimator.estimate([4.0, 7.5]) == pytest.approx(7.5)

    def test_missing_datapoints(self):
        estimator = ConsumedCapacityEstimator()
        assert estimator.estimate([]) == 0.0
        assert estimator.estimate([None, float("nan")]) == 0.0
        assert estimator.estimate([None, 120]) == pytest.approx(2.0)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            ConsumedCapacityEstimator(period_seconds=0)
        with pytest.raises(ValueError):
            ConsumedCapacityEstimator(statistic="Median")
        assert ConsumedCapacityEstimator(aggregation="max").aggregation == WindowAggregation.MAX


# ── Source Tests ─────────────────────────────────────────────────────


class TestSampleSources:
    def test_in_memory_groups_by_table(self, make_sample):
        source = InMemorySampleSource([
            make_sample(name="orders"),
            make_sample(name="orders", index_name="by-date"),
            make_sample(name="users"),
        ])
        assert source.resource_names == ["orders", "users"]
        assert [s.resource_id for s in source.get_samples("orders")] == ["orders", "orders/by-date"]
        with pytest.raises(KeyError):
            source.get_samples("ghost")

    def test_json_source_estimates_datapoints(self):
        source = JsonSampleSource([{
            "TableName": "orders",
            "ProvisionedThroughput": {"ReadCapacityUnits": 10, "WriteCapacityUnits": 5},
            "ConsumedDatapoints": {"ReadCapacityUnits": [60, 120], "WriteCapacityUnits": []},
        }])
        sample = source.get_samples("orders")[0]
        assert sample.consumed_read_capacity_units == pytest.approx(2.0)
        assert sample.consumed_write_capacity_units == 0.0

    def test_json_source_from_file(self, tmp_path):
        path = tmp_path / "samples.json"
        path.write_text(json.dumps([
            {"TableName": "orders", "ConsumedThroughput": {"ReadCapacityUnits": 3}},
        ]))
        source = JsonSampleSource.from_file(path)
        assert source.get_samples("orders")[0].consumed_read_capacity_units == 3.0

    def test_json_source_rejects_non_list(self, tmp_path):
        path = tmp_path / "samples.json"
        path.write_text(json.dumps({"TableName": "orders"}))
        with pytest.raises(ValueError):
            JsonSampleSource.from_file(path)

    def test_json_source_names_entry_without_table(self):
        with pytest.raises(ValueError, match="Sample entry 1 has no TableName"):
            JsonSampleSource([{"TableName": "orders"}, {"IndexName": "by-date"}])
        with pytest.raises(ValueError, match="Sample entry 0"):
            JsonSampleSource(["orders"])


class TestLoadPolicyLookup:
    def test_single_policy(self, tmp_path, make_sample):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"ReadCapacity": {"Min": 2, "Max": 20}}))
        lookup = load_policy_lookup(path)
        assert isinstance(lookup, DefaultPolicyLookup)
        assert lookup.policy_for(make_sample()).read_capacity.maximum == 20.0

    def test_per_resource_policies(self, tmp_path, make_sample):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({
            "default": {"ReadCapacity": {"Max": 10}},
            "orders": {"ReadCapacity": {"Max": 50}},
        }))
        lookup = load_policy_lookup(path)
        assert isinstance(lookup, MappingPolicyLookup)
        assert lookup.policy_for(make_sample()).read_capacity.maximum == 50.0
        assert lookup.policy_for(make_sample(name="users")).read_capacity.maximum == 10.0

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps([1, 2]))
        with pytest.raises(PolicyConfigError):
            load_policy_lookup(path)


# ── Report Tests ─────────────────────────────────────────────────────


class TestReports:
    def test_empty_frames(self):
        assert list(records_to_frame([]).columns) == RECORD_COLUMNS
        assert list(updates_to_frame([]).columns) == UPDATE_COLUMNS
        assert records_to_frame([]).empty

    def test_records_frame(self, engine, samples):
        report = _provisioner(samples, engine).run_cycle()
        df = records_to_frame(report.records)
        assert len(df) == len(report.records)
        assert list(df.columns) == RECORD_COLUMNS
        assert df["resource_id"].is_monotonic_increasing
        required = df[df["is_adjustment_required"]]
        assert set(required["resource_id"]) == {"orders", "users"}

    def test_updates_frame(self, engine, samples):
        report = _provisioner(samples, engine).run_cycle()
        df = updates_to_frame(report.planned_updates).set_index("resource_id")
        assert df.loc["users", "read_to"] == 5.0
        assert df.loc["users", "write_to"] == 8.0
        assert df.loc["orders", "read_from"] == 10
