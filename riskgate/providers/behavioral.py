"""
Behavioral Provider

Keystroke dynamics captured while the user types the password or a
prompt phrase.

Key metrics:
- Dwell time: how long each key is held (release - press)
- Flight time: gap between a key release and the next key press
- Typing speed in words per minute (5 characters per word)
- Error rate: share of correction keystrokes
- Rhythm consistency: 1 - coefficient of variation of flight times

Humans typing their own password are fast and regular; scripted input,
copy/paste relays and unfamiliar typists fall outside those bands.
"""

import statistics
from dataclasses import dataclass
from typing import Optional

from ..schemas import (
    AttemptContext,
    EvidenceCodes,
    IdentityBaseline,
    ProviderNames,
    Signal,
    TypingSample,
)
from .base import SignalBuilder, SignalProvider


MIN_SAMPLES = 2

# Normal human bands
MIN_WPM = 20.0
MAX_WPM = 100.0
MAX_ERROR_RATE = 0.1
MIN_RHYTHM_CONSISTENCY = 0.5
MIN_DWELL_MS = 50.0
MAX_DWELL_MS = 300.0

SPEED_SCORE = 0.3
ERROR_RATE_SCORE = 0.2
RHYTHM_SCORE = 0.2
DWELL_SCORE = 0.1


@dataclass(frozen=True)
class TypingMetrics:
    """Summary statistics of one typing session."""
    samples: int
    words_per_minute: float
    error_rate: float
    rhythm_consistency: float
    mean_dwell_ms: Optional[float]
    mean_flight_ms: Optional[float]


def compute_typing_metrics(
    samples: list[TypingSample],
    typed_text_length: Optional[int] = None,
) -> TypingMetrics:
    """
    Compute keystroke dynamics for a typing session.

    Args:
        samples: Keystrokes in any order (sorted by press time here)
        typed_text_length: Final text length; defaults to non-correction keystrokes

    Returns:
        TypingMetrics
    """
    ordered = sorted(samples, key=lambda s: s.pressed_at_ms)

    dwells = [s.dwell_ms for s in ordered if s.dwell_ms is not None and s.dwell_ms >= 0]

    flights = []
    for previous, current in zip(ordered, ordered[1:]):
        if previous.released_at_ms is None:
            continue
        gap = current.pressed_at_ms - previous.released_at_ms
        if gap > 0:
            flights.append(gap)

    corrections = sum(1 for s in ordered if s.is_correction)
    chars = typed_text_length if typed_text_length is not None else len(ordered) - corrections

    start = ordered[0].pressed_at_ms
    end = max(
        s.released_at_ms if s.released_at_ms is not None else s.pressed_at_ms
        for s in ordered
    )
    minutes = (end - start) / 60000.0
    wpm = (chars / 5.0) / minutes if minutes > 0 else 0.0

    if len(flights) < 2:
        rhythm = 1.0
    else:
        mean_flight = statistics.fmean(flights)
        rhythm = max(0.0, 1.0 - statistics.pstdev(flights) / mean_flight)

    return TypingMetrics(
        samples=len(ordered),
        words_per_minute=wpm,
        error_rate=corrections / len(ordered) if ordered else 0.0,
        rhythm_consistency=rhythm,
        mean_dwell_ms=statistics.fmean(dwells) if dwells else None,
        mean_flight_ms=statistics.fmean(flights) if flights else None,
    )


class BehavioralProvider(SignalProvider):
    """
    Scores keystroke dynamics against normal human bands.

    Confidence grows with the number of keystrokes and reaches 1.0 at
    full_confidence_samples.
    """

    name = ProviderNames.BEHAVIORAL

    def __init__(self, full_confidence_samples: int = 10):
        self.full_confidence_samples = full_confidence_samples

    def is_applicable(self, context: AttemptContext) -> bool:
        return context.timed_keystrokes >= MIN_SAMPLES

    async def score(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
    ) -> Signal:
        metrics = compute_typing_metrics(context.typing_samples, context.typed_text_length)

        result = SignalBuilder(self.name)
        result.confidence = min(1.0, metrics.samples / self.full_confidence_samples)
        result.observed.update({
            "words_per_minute": round(metrics.words_per_minute, 1),
            "error_rate": round(metrics.error_rate, 3),
            "rhythm_consistency": round(metrics.rhythm_consistency, 3),
            "mean_dwell_ms": metrics.mean_dwell_ms,
        })

        if not MIN_WPM <= metrics.words_per_minute <= MAX_WPM:
            result.add(SPEED_SCORE, EvidenceCodes.TYPING_SPEED_ANOMALY)

        if metrics.error_rate > MAX_ERROR_RATE:
            result.add(ERROR_RATE_SCORE, EvidenceCodes.HIGH_ERROR_RATE)

        if metrics.rhythm_consistency < MIN_RHYTHM_CONSISTENCY:
            result.add(RHYTHM_SCORE, EvidenceCodes.INCONSISTENT_RHYTHM)

        if metrics.mean_dwell_ms is not None and not MIN_DWELL_MS <= metrics.mean_dwell_ms <= MAX_DWELL_MS:
            result.add(DWELL_SCORE, EvidenceCodes.UNUSUAL_DWELL_TIME)

        return result.build()
