"""
Measured system telemetry for the home dashboard.

Figures come from the request-timing ring buffer and the process start
time. Nothing is estimated: with no samples in the window the averages are
None rather than a made-up number.
"""

import time
from dataclasses import asdict, dataclass

from workspace_hub.middleware.timing import get_recent_metrics


@dataclass(frozen=True)
class TelemetrySnapshot:
    uptime_seconds: float
    avg_response_ms: float | None
    p95_response_ms: float | None
    availability: float | None
    sample_count: int
    window_seconds: int
    source: str = "measured"

    def to_dict(self) -> dict:
        return asdict(self)


def summarize_samples(samples, *, started_at, window_seconds, now=None):
    """Build a snapshot from timing samples (dicts with ``ms`` and ``status``).

    availability is the share of samples that did not end in a 5xx.
    """
    now = time.time() if now is None else now
    durations = sorted(s["ms"] for s in samples)
    count = len(durations)
    if count:
        avg = round(sum(durations) / count, 1)
        p95 = durations[min(count - 1, int(round(0.95 * (count - 1))))]
        healthy = sum(1 for s in samples if s["status"] < 500)
        availability = round(healthy / count * 100, 2)
    else:
        avg = p95 = availability = None
    return TelemetrySnapshot(
        uptime_seconds=round(max(0.0, now - started_at), 1),
        avg_response_ms=avg,
        p95_response_ms=p95,
        availability=availability,
        sample_count=count,
        window_seconds=window_seconds,
    )


def collect_telemetry(app, now=None):
    """Snapshot for ``app`` over its TELEMETRY_WINDOW_SECONDS."""
    window = int(app.config.get("TELEMETRY_WINDOW_SECONDS", 3600))
    started_at = app.extensions.get("workspace_hub.started_at", time.time())
    return summarize_samples(
        get_recent_metrics(window), started_at=started_at, window_seconds=window, now=now,
    )
