"""
Lightweight in-memory telemetry for the login demo dashboard.
"""

from collections import deque
from datetime import datetime, UTC, timedelta
from statistics import mean
from typing import Deque, Dict, Iterable, Optional


class DecisionTelemetry:
    """Ring buffer of recent decisions for /metrics/summary."""

    def __init__(self, maxlen: int = 2000) -> None:
        self._events: Deque[dict] = deque(maxlen=maxlen)

    def record(
        self,
        decision: str,
        latency_ms: float,
        composite_score: Optional[float] = None,
        degraded_providers: Iterable[str] = (),
    ) -> None:
        self._events.append(
            {
                "ts": datetime.now(UTC),
                "decision": decision,
                "latency_ms": latency_ms,
                "composite_score": composite_score,
                "degraded_providers": list(degraded_providers),
            }
        )

    def clear(self) -> None:
        self._events.clear()

    def snapshot(self, hours: int = 24) -> dict:
        cutoff = datetime.now(UTC) - timedelta(hours=hours)
        events = [e for e in self._events if e["ts"] >= cutoff]

        latencies = [e["latency_ms"] for e in events]
        scores = [e["composite_score"] for e in events if e["composite_score"] is not None]
        decisions: Dict[str, int] = {}
        degraded: Dict[str, int] = {}
        for e in events:
            decisions[e["decision"]] = decisions.get(e["decision"], 0) + 1
            for provider in e["degraded_providers"]:
                degraded[provider] = degraded.get(provider, 0) + 1

        p95 = None
        if latencies:
            latencies_sorted = sorted(latencies)
            index = int(round(0.95 * (len(latencies_sorted) - 1)))
            p95 = latencies_sorted[index]

        return {
            "window_hours": hours,
            "total": len(events),
            "counts": decisions,
            "degraded_counts": degraded,
            "avg_latency_ms": mean(latencies) if latencies else None,
            "p95_latency_ms": p95,
            "avg_composite_score": mean(scores) if scores else None,
            "events": [
                {
                    "ts": e["ts"].isoformat(),
                    "decision": e["decision"],
                    "latency_ms": e["latency_ms"],
                    "composite_score": e["composite_score"],
                }
                for e in events
            ],
        }


telemetry = DecisionTelemetry()
