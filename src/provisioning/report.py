"""Tabular views of decision records and planned updates."""

from typing import Iterable

import pandas as pd

from .models import DecisionRecord, ThroughputUpdate

RECORD_COLUMNS = [
    "resource_id",
    "capacity_type",
    "direction",
    "provisioned",
    "consumed",
    "utilisation_pct",
    "min",
    "max",
    "is_above_max",
    "is_below_min",
    "is_above_threshold",
    "is_below_threshold",
    "is_after_last_decrease_grace_period",
    "is_after_last_increase_grace_period",
    "is_decrement_allowed",
    "is_adjustment_wanted",
    "is_adjustment_allowed",
    "is_adjustment_required",
]

UPDATE_COLUMNS = ["resource_id", "read_from", "read_to", "write_from", "write_to"]


def records_to_frame(records: Iterable[DecisionRecord]) -> pd.DataFrame:
    """One row per decision, sorted by resource, capacity type and direction."""
    rows = [record.to_dict() for record in records]
    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    df = pd.DataFrame(rows)[RECORD_COLUMNS]
    return df.sort_values(["resource_id", "capacity_type", "direction"]).reset_index(drop=True)


def updates_to_frame(updates: Iterable[ThroughputUpdate]) -> pd.DataFrame:
    rows = [update.to_dict() for update in updates]
    if not rows:
        return pd.DataFrame(columns=UPDATE_COLUMNS)
    df = pd.DataFrame(rows)[UPDATE_COLUMNS]
    return df.sort_values("resource_id").reset_index(drop=True)
