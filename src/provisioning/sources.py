"""Throughput sample sources and update sinks.

A sample source returns the samples of one table: the table itself plus each
of its indexes. Updaters apply planned throughput changes to the store.
"""

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from .consumption import ConsumedCapacityEstimator
from .models import ThroughputSample, ThroughputUpdate

logger = logging.getLogger(__name__)


class SampleSource(Protocol):
    def get_samples(self, resource_name: str) -> List[ThroughputSample]:
        ...


class ThroughputUpdater(Protocol):
    def apply(self, update: ThroughputUpdate) -> None:
        ...


class InMemorySampleSource:
    """Serves pre-built samples grouped by table name."""

    def __init__(self, samples: Iterable[ThroughputSample]):
        self._samples: Dict[str, List[ThroughputSample]] = defaultdict(list)
        for sample in samples:
            self._samples[sample.resource_name].append(sample)

    @property
    def resource_names(self) -> List[str]:
        return list(self._samples)

    def get_samples(self, resource_name: str) -> List[ThroughputSample]:
        if resource_name not in self._samples:
            raise KeyError(f"No throughput samples for {resource_name}")
        return list(self._samples[resource_name])


class JsonSampleSource(InMemorySampleSource):
    """Samples loaded from a JSON list of describe-style mappings.

    An entry may carry ``ConsumedDatapoints`` (raw metric values per capacity
    type) instead of ``ConsumedThroughput``; the estimator turns those into
    consumed units per second.
    """

    def __init__(
        self,
        entries: Iterable[Mapping[str, Any]],
        estimator: Optional[ConsumedCapacityEstimator] = None,
    ):
        self.estimator = estimator or ConsumedCapacityEstimator()
        super().__init__(self._to_sample(index, entry) for index, entry in enumerate(entries))

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        estimator: Optional[ConsumedCapacityEstimator] = None,
    ) -> "JsonSampleSource":
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON list of samples")
        logger.info(f"Loaded {len(data)} throughput samples from {path}")
        return cls(data, estimator=estimator)

    def _to_sample(self, index: int, entry: Mapping[str, Any]) -> ThroughputSample:
        if not isinstance(entry, Mapping) or not entry.get("TableName"):
            raise ValueError(f"Sample entry {index} has no TableName: {entry!r}")
        datapoints = entry.get("ConsumedDatapoints")
        if datapoints is None:
            return ThroughputSample.from_dict(entry)
        data = dict(entry)
        data["ConsumedThroughput"] = {
            "ReadCapacityUnits": self.estimator.estimate(datapoints.get("ReadCapacityUnits") or []),
            "WriteCapacityUnits": self.estimator.estimate(datapoints.get("WriteCapacityUnits") or []),
        }
        return ThroughputSample.from_dict(data)
