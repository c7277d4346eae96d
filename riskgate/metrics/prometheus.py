"""
Prometheus Metrics

Defines all metrics exposed by the login risk service.
Metrics are critical for:
- SLA monitoring (assessment latency, provider latency)
- Security metrics (challenge and block rates)
- Operational health (degraded providers, error rates)
"""

import logging

from prometheus_client import Counter, Histogram, Gauge

logger = logging.getLogger("riskgate.metrics")

SCORE_BUCKETS = [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]


class RiskMetrics:
    """
    Container for all Prometheus metrics.

    Organized by category:
    - Request metrics
    - Latency metrics
    - Provider metrics
    - Decision metrics
    - Ledger metrics
    """

    def __init__(self):
        """Initialize all metrics."""

        # =====================================================================
        # Request Metrics
        # =====================================================================
        self.requests_total = Counter(
            "riskgate_requests_total",
            "Total number of risk API requests",
            labelnames=["endpoint"],
        )

        self.errors_total = Counter(
            "riskgate_errors_total",
            "Total number of errors",
            labelnames=["error_type"],
        )

        # =====================================================================
        # Latency Metrics
        # =====================================================================
        # End-to-end assessment latency (bounded by the slowest provider timeout)
        self.assess_latency = Histogram(
            "riskgate_assess_latency_ms",
            "End-to-end assessment latency in milliseconds",
            buckets=[10, 25, 50, 100, 250, 500, 1000, 1500, 2000, 3000],
        )

        # =====================================================================
        # Provider Metrics
        # =====================================================================
        self.provider_latency = Histogram(
            "riskgate_provider_latency_ms",
            "Signal provider latency in milliseconds",
            labelnames=["provider"],
            buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 1500],
        )

        self.degraded_signals = Counter(
            "riskgate_degraded_signals_total",
            "Signals replaced by a degraded fallback",
            labelnames=["provider", "reason"],
        )

        # =====================================================================
        # Decision Metrics
        # =====================================================================
        self.decisions_total = Counter(
            "riskgate_decisions_total",
            "Total decisions by type",
            labelnames=["decision"],
        )

        self.overrides_total = Counter(
            "riskgate_overrides_total",
            "Decisions forced by a kill-switch or blocklist",
            labelnames=["reason"],
        )

        self.composite_score = Histogram(
            "riskgate_composite_score",
            "Distribution of composite risk scores",
            buckets=SCORE_BUCKETS,
        )

        self.outcomes_total = Counter(
            "riskgate_outcomes_total",
            "OTP outcomes recorded against challenged attempts",
            labelnames=["outcome"],
        )

        # =====================================================================
        # Ledger Metrics
        # =====================================================================
        self.baseline_updates = Counter(
            "riskgate_baseline_updates_total",
            "Identity baseline updates after ALLOW decisions",
        )

        self.ledger_latency = Histogram(
            "riskgate_ledger_latency_ms",
            "Ledger operation latency in milliseconds",
            buckets=[1, 2, 5, 10, 20, 50],
        )

        # Component health
        self.component_health = Gauge(
            "riskgate_component_health",
            "Component health status (1=healthy, 0=unhealthy)",
            labelnames=["component"],
        )


# Global metrics instance
metrics = RiskMetrics()
