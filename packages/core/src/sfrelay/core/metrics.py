"""Delivery counters."""

from __future__ import annotations

from enum import Enum


class PipelineMetricKind(str, Enum):
    TOTAL_REQUESTS = "total_requests"
    ERRORS = "errors"


class PipelineMetrics:
    """Sum-aggregated counters for delivery requests."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {kind.value: 0 for kind in PipelineMetricKind}

    def increment(self, kind: PipelineMetricKind, delta: int = 1) -> None:
        self._counters[kind.value] += delta

    def get(self, kind: PipelineMetricKind) -> int:
        return self._counters[kind.value]

    def to_dict(self) -> dict[str, int]:
        return dict(self._counters)
