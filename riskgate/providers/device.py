"""
Device Provider

Compares the device fingerprint (collected client-side, opaque here)
against the identity's trusted device set.
"""

from typing import Optional

from ..schemas import AttemptContext, EvidenceCodes, IdentityBaseline, ProviderNames, Signal
from .base import SignalBuilder, SignalProvider


NEW_DEVICE_SCORE = 0.6
CLASS_MISMATCH_SCORE = 0.3
FIRST_SEEN_CONFIDENCE = 0.5


class DeviceProvider(SignalProvider):
    """Scores device novelty for an identity."""

    name = ProviderNames.DEVICE

    def __init__(self, first_seen_score: float = 0.5):
        self.first_seen_score = first_seen_score

    def is_applicable(self, context: AttemptContext) -> bool:
        return context.has_device

    async def score(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
    ) -> Signal:
        result = SignalBuilder(self.name)
        result.observed["fingerprint"] = context.device_fingerprint
        if context.device_class is not None:
            result.observed["device_class"] = context.device_class.value

        if baseline is None or not baseline.trusted_devices:
            result.score = self.first_seen_score
            result.confidence = FIRST_SEEN_CONFIDENCE
            result.note(EvidenceCodes.FIRST_SEEN_IDENTITY)
            return result.build()

        if context.device_fingerprint in baseline.trusted_devices:
            result.note(EvidenceCodes.TRUSTED_DEVICE)
        else:
            result.add(NEW_DEVICE_SCORE, EvidenceCodes.NEW_DEVICE)

        if (
            context.device_class is not None
            and baseline.known_device_classes
            and context.device_class.value not in baseline.known_device_classes
        ):
            result.add(CLASS_MISMATCH_SCORE, EvidenceCodes.DEVICE_CLASS_MISMATCH)

        return result.build()
