# Data schemas for the login risk engine
from .base import WireModel
from .attempts import AttemptContext, TypingSample, DeviceClass, CORRECTION_KEYS
from .signals import Signal, EvidenceCodes, ProviderNames, FORCE_BLOCK_PREFIX
from .decisions import AuthDecision, RiskAssessment, OverrideReasons, new_attempt_id
from .ledger import (
    GeoLocation,
    IdentityBaseline,
    FinalOutcome,
    AttemptRecord,
    AttemptOutcomeRequest,
)

__all__ = [
    "WireModel",
    # Attempts
    "AttemptContext",
    "TypingSample",
    "DeviceClass",
    "CORRECTION_KEYS",
    # Signals
    "Signal",
    "EvidenceCodes",
    "ProviderNames",
    "FORCE_BLOCK_PREFIX",
    # Decisions
    "AuthDecision",
    "RiskAssessment",
    "OverrideReasons",
    "new_attempt_id",
    # Ledger
    "GeoLocation",
    "IdentityBaseline",
    "FinalOutcome",
    "AttemptRecord",
    "AttemptOutcomeRequest",
]
