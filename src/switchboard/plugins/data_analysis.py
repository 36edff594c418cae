"""Descriptive statistics over a numeric series."""

from __future__ import annotations

import statistics
from datetime import UTC, datetime
from typing import Any

from switchboard.capabilities import Capability
from switchboard.extensions import CapabilityPlugin

DEFAULT_METRICS = ["count", "mean", "median", "mode", "min", "max", "stdev"]


def _metric(name: str, values: list[float]) -> float | int | None:
    if name == "count":
        return len(values)
    if not values:
        return None
    if name == "mean":
        return statistics.fmean(values)
    if name == "median":
        return statistics.median(values)
    if name == "mode":
        return statistics.mode(values)
    if name == "min":
        return min(values)
    if name == "max":
        return max(values)
    if name == "stdev":
        return statistics.stdev(values) if len(values) > 1 else 0.0
    if name == "sum":
        return sum(values)
    raise ValueError(f"Unknown metric: {name}")


def analyze_data(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    raw = params.get("values") or []
    try:
        values = [float(v) for v in raw]
    except (TypeError, ValueError) as e:
        raise ValueError("values must be a list of numbers") from e

    metrics = params.get("metrics") or DEFAULT_METRICS
    return {
        "dataset": params.get("dataset", ""),
        "metrics": metrics,
        "results": {name: _metric(name, values) for name in metrics},
        "timestamp": datetime.now(UTC).isoformat(),
    }


class DataAnalysisPlugin(CapabilityPlugin):
    @property
    def name(self) -> str:
        return "data_analysis"

    @property
    def description(self) -> str:
        return "Local descriptive statistics"

    def capabilities(self) -> list[Capability]:
        return [
            Capability(
                name="analyzeData",
                description="Analyze a numeric dataset and return summary statistics",
                handler=analyze_data,
                parameters={
                    "type": "object",
                    "properties": {
                        "dataset": {"type": "string", "description": "Name of the dataset"},
                        "values": {
                            "type": "array",
                            "items": {"type": "number"},
                            "description": "The numbers to analyze",
                        },
                        "metrics": {
                            "type": "array",
                            "items": {"type": "string", "enum": [*DEFAULT_METRICS, "sum"]},
                            "description": "Metrics to calculate",
                        },
                    },
                    "required": ["dataset", "values"],
                },
            )
        ]
