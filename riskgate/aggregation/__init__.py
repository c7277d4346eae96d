# Signal aggregation
from .aggregator import SignalAggregator, combine_signals, degraded_signal

__all__ = [
    "SignalAggregator",
    "combine_signals",
    "degraded_signal",
]
