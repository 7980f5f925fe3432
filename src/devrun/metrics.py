"""Prometheus counters for tool invocations and readiness polling."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile

_DURATION_BUCKETS: tuple[float, ...] = (0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0)


@dataclass(slots=True)
class RunMetrics:
    registry: CollectorRegistry
    tool_invocations: Counter
    tool_duration: Histogram
    readiness_polls: Counter

    def record_tool(self, *, tool: str, returncode: int, duration: float) -> None:
        outcome = "success" if returncode == 0 else "failure"
        self.tool_invocations.labels(tool=tool, outcome=outcome).inc()
        self.tool_duration.labels(tool=tool).observe(max(0.0, duration))

    def record_poll(self, *, service: str, ready: bool) -> None:
        self.readiness_polls.labels(service=service, outcome="ready" if ready else "pending").inc()

    def write_textfile(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(path), self.registry)


def build_run_metrics(registry: CollectorRegistry | None = None) -> RunMetrics:
    reg = registry or CollectorRegistry()
    tool_invocations = Counter(
        "devrun_tool_invocations_total",
        "External tool invocations by tool and outcome.",
        registry=reg,
        labelnames=("tool", "outcome"),
    )
    tool_duration = Histogram(
        "devrun_tool_duration_seconds",
        "Wall time of external tool invocations.",
        registry=reg,
        labelnames=("tool",),
        buckets=_DURATION_BUCKETS,
    )
    readiness_polls = Counter(
        "devrun_readiness_polls_total",
        "Background service readiness scans by outcome.",
        registry=reg,
        labelnames=("service", "outcome"),
    )
    return RunMetrics(
        registry=reg,
        tool_invocations=tool_invocations,
        tool_duration=tool_duration,
        readiness_polls=readiness_polls,
    )
