"""
Signal Provider Base

Every provider turns one slice of an AttemptContext into a Signal.
Providers run independently and in parallel; the aggregator owns
timeouts at the attempt level, while each provider bounds its own call
so it can also be used on its own.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import ProviderTimeout
from ..schemas import AttemptContext, IdentityBaseline, Signal


@dataclass
class SignalBuilder:
    """
    Mutable accumulator used while a provider scores an attempt.

    Score contributions are summed and capped at 1.0 on build.
    """
    name: str
    score: float = 0.0
    confidence: float = 1.0
    evidence: list[str] = field(default_factory=list)
    observed: dict[str, Any] = field(default_factory=dict)

    def add(self, amount: float, code: str) -> None:
        """Raise the score and record why."""
        self.score += amount
        self.evidence.append(code)

    def note(self, code: str) -> None:
        """Record evidence that does not change the score."""
        self.evidence.append(code)

    def build(self) -> Signal:
        return Signal(
            name=self.name,
            score=min(1.0, max(0.0, self.score)),
            confidence=min(1.0, max(0.0, self.confidence)),
            evidence=tuple(self.evidence),
            observed=self.observed,
        )


class SignalProvider(ABC):
    """
    Base class for all signal providers.

    Each provider focuses on one risk dimension:
    - PhoneCarrierProvider: line type, carrier reputation, porting
    - GeoIpProvider: distance from baseline, anonymizers, Tor
    - DeviceProvider: trusted device set, device class drift
    - BehavioralProvider: keystroke dynamics
    - SimSwapProvider: recent SIM replacement
    """

    name: str = ""

    @abstractmethod
    def is_applicable(self, context: AttemptContext) -> bool:
        """Whether the attempt carries the input this provider needs."""
        pass

    @abstractmethod
    async def score(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
    ) -> Signal:
        """
        Run provider logic.

        Args:
            context: Login attempt
            baseline: Identity baseline snapshot, None for first-seen identities

        Returns:
            Signal with score, confidence and evidence

        Raises:
            ProviderError: if an upstream lookup fails
        """
        pass

    async def evaluate(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
        timeout: float,
    ) -> Signal:
        """
        Score the attempt within `timeout` seconds.

        Raises:
            ProviderTimeout: if scoring did not finish in time
            ProviderError: if an upstream lookup fails
        """
        try:
            return await asyncio.wait_for(self.score(context, baseline), timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeout(self.name, timeout * 1000) from None
