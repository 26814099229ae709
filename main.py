"""CLI entry point: python main.py --samples samples.json"""

import argparse
import json
import sys

import pandas as pd

from src.logging_config import LogFormat, LoggingConfig, LogLevel, configure_logging
from src.provisioning import (
    ConsumedCapacityEstimator,
    DecisionEngine,
    DefaultPolicyLookup,
    JsonSampleSource,
    Provisioner,
    RateLimitedDecrement,
    StaticResourceLister,
    SystemClock,
    load_policy_lookup,
    records_to_frame,
    updates_to_frame,
)
from src.settings import get_settings


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Provisioned throughput autoscaler - offline capacity planner"
    )
    parser.add_argument(
        "--samples", required=True,
        help="JSON list of describe-style throughput samples"
    )
    parser.add_argument(
        "--policy", default=None,
        help="JSON scaling policy file (default: AUTOSCALER_POLICY_PATH or built-in)"
    )
    parser.add_argument(
        "--resources", default=None,
        help="Comma-separated table names to evaluate (default: all in samples)"
    )
    parser.add_argument(
        "--format", choices=["table", "json"], default="table",
        help="Output format"
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Print every decision, not only required adjustments"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(LoggingConfig(
        level=LogLevel.DEBUG if args.verbose else LogLevel.WARNING,
        format=LogFormat.CONSOLE,
    ))

    estimator = ConsumedCapacityEstimator(
        period_seconds=settings.consumed_period_seconds,
        statistic=settings.consumed_statistic,
        aggregation=settings.consumed_aggregation,
    )
    try:
        source = JsonSampleSource.from_file(args.samples, estimator=estimator)
    except (OSError, ValueError) as exc:
        print(f"Cannot load samples from {args.samples}: {exc}", file=sys.stderr)
        return 2

    policy_path = args.policy or settings.policy_path
    lookup = load_policy_lookup(policy_path) if policy_path else DefaultPolicyLookup()

    if args.resources:
        resource_names = [name.strip() for name in args.resources.split(",") if name.strip()]
    else:
        resource_names = source.resource_names

    clock = SystemClock()
    engine = DecisionEngine(
        policy_lookup=lookup,
        safeguard=RateLimitedDecrement(decrements_per_day=settings.decrements_per_day, clock=clock),
        clock=clock,
    )
    provisioner = Provisioner(
        StaticResourceLister(resource_names),
        source,
        engine,
        dry_run=settings.dry_run,
        max_workers=settings.max_workers,
        slow_cycle_ms=settings.slow_cycle_ms,
    )
    report = provisioner.run_cycle()

    records = [r for r in report.records if args.verbose or r.is_adjustment_required]

    if args.format == "json":
        print(json.dumps({
            "summary": report.summary(),
            "decisions": [r.to_dict() for r in records],
            "updates": [u.to_dict() for u in report.planned_updates],
            "failures": report.failures,
        }, indent=2))
        return 1 if report.failures else 0

    decisions = records_to_frame(records)
    updates = updates_to_frame(report.planned_updates)

    print("=" * 60)
    print("THROUGHPUT AUTOSCALER - CAPACITY PLAN")
    print(f"Cycle: {report.cycle_id}")
    print("=" * 60)

    with pd.option_context("display.max_columns", None, "display.width", 200):
        print(f"\n[1/3] Decisions ({len(decisions)})")
        if decisions.empty:
            print("  No adjustments required")
        else:
            print(decisions.to_string(index=False))

        print(f"\n[2/3] Planned updates ({len(updates)})")
        if updates.empty:
            print("  Nothing to change")
        else:
            print(updates.to_string(index=False))

    print(f"\n[3/3] Failures ({len(report.failures)})")
    for resource_id, reason in sorted(report.failures.items()):
        print(f"  {resource_id}: {reason}")

    return 1 if report.failures else 0


if __name__ == "__main__":
    sys.exit(main())
