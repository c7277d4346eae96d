"""
SIM Swap Provider

A SIM replaced shortly before a login is the classic precursor of an
account takeover via intercepted OTPs. Risk decays with swap age:
- younger than recent_days: 1.0 falling linearly to 0.9
- recent_days up to window_days: 0.6 falling linearly to 0.0
- older than window_days: no risk
"""

from datetime import datetime, UTC
from typing import Callable, Optional

from ..clients import SimSwapLookupClient
from ..errors import ProviderError
from ..schemas import AttemptContext, EvidenceCodes, IdentityBaseline, ProviderNames, Signal
from .base import SignalBuilder, SignalProvider
from .phone_carrier import normalize_phone_number


RECENT_SWAP_MAX_SCORE = 1.0
RECENT_SWAP_MIN_SCORE = 0.9
WINDOW_SWAP_MAX_SCORE = 0.6
UNKNOWN_DATE_SCORE = 0.7


class SimSwapProvider(SignalProvider):
    """Scores carrier-reported SIM replacement; confidence comes from the lookup."""

    name = ProviderNames.SIM_SWAP

    def __init__(
        self,
        client: SimSwapLookupClient,
        recent_days: int = 7,
        window_days: int = 30,
        default_country_code: str = "91",
        national_number_length: int = 10,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.client = client
        self.recent_days = recent_days
        self.window_days = window_days
        self.default_country_code = default_country_code
        self.national_number_length = national_number_length
        self.clock = clock

    def is_applicable(self, context: AttemptContext) -> bool:
        return context.has_phone

    def score_for_age(self, age_days: float) -> float:
        """Risk of a swap that happened `age_days` ago."""
        age_days = max(0.0, age_days)
        if age_days < self.recent_days:
            drop = RECENT_SWAP_MAX_SCORE - RECENT_SWAP_MIN_SCORE
            return RECENT_SWAP_MAX_SCORE - drop * age_days / self.recent_days
        if age_days < self.window_days:
            span = self.window_days - self.recent_days
            return WINDOW_SWAP_MAX_SCORE * (self.window_days - age_days) / span
        return 0.0

    async def score(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
    ) -> Signal:
        number = normalize_phone_number(
            context.phone_number,
            self.default_country_code,
            self.national_number_length,
        )
        if number is None:
            # Nothing to look up; phone_carrier already reports the bad format
            raise ProviderError(self.name, "phone number is not E.164-shaped")

        info = await self.client.lookup_sim_swap(number)
        result = SignalBuilder(self.name)
        result.confidence = info.confidence

        if not info.swapped:
            result.note(EvidenceCodes.NO_SIM_SWAP)
            return result.build()

        if info.swapped_at is None:
            result.add(UNKNOWN_DATE_SCORE, EvidenceCodes.SIM_SWAP_UNKNOWN_DATE)
            return result.build()

        age_days = (self.clock() - info.swapped_at).total_seconds() / 86400
        result.observed["swap_age_days"] = round(age_days, 2)

        if age_days < self.recent_days:
            result.add(self.score_for_age(age_days), EvidenceCodes.RECENT_SIM_SWAP)
        elif age_days < self.window_days:
            result.add(self.score_for_age(age_days), EvidenceCodes.SIM_SWAP_IN_WINDOW)
        else:
            result.note(EvidenceCodes.SIM_SWAP_OUTSIDE_WINDOW)

        return result.build()
