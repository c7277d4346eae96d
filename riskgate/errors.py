"""
Error Taxonomy

Exceptions raised across the risk engine. Provider-local failures
(ProviderError, ProviderTimeout) never escape the aggregator; they are
converted to degraded signals. Configuration failures are fatal at
startup. Context and ledger errors map to HTTP 4xx responses.
"""

from typing import Optional


class RiskEngineError(Exception):
    """Base class for all risk engine errors."""
    pass


class ProviderError(RiskEngineError):
    """A signal provider or its upstream lookup failed."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderTimeout(ProviderError):
    """A signal provider did not answer within its timeout."""

    def __init__(self, provider: str, timeout_ms: Optional[float] = None):
        self.timeout_ms = timeout_ms
        detail = f"timed out after {timeout_ms:.0f}ms" if timeout_ms is not None else "timed out"
        super().__init__(provider, detail)


class InvalidConfiguration(RiskEngineError):
    """Risk policy violates weight, range or threshold constraints."""
    pass


class MalformedAttemptContext(RiskEngineError):
    """A login attempt is missing required top-level fields."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required fields: " + ", ".join(missing))


class AttemptNotFound(RiskEngineError):
    """No ledger record exists for the attempt ID."""

    def __init__(self, attempt_id: str):
        self.attempt_id = attempt_id
        super().__init__(f"Attempt '{attempt_id}' not found")


class OutcomeAlreadyRecorded(RiskEngineError):
    """The attempt is not awaiting an OTP outcome."""

    def __init__(self, attempt_id: str, current_outcome: str):
        self.attempt_id = attempt_id
        self.current_outcome = current_outcome
        super().__init__(
            f"Attempt '{attempt_id}' already has outcome {current_outcome}"
        )


class LedgerConflict(RiskEngineError):
    """An optimistic ledger transaction kept losing to concurrent writers."""
    pass
