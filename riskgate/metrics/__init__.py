# Metrics Module
from .prometheus import metrics, RiskMetrics
from .telemetry import telemetry, DecisionTelemetry

__all__ = ["metrics", "RiskMetrics", "telemetry", "DecisionTelemetry"]
