# External lookup clients
from .base import (
    CarrierInfo,
    SimSwapInfo,
    IpIntelligence,
    CarrierLookupClient,
    SimSwapLookupClient,
    IpIntelligenceClient,
)
from .mock import MockCarrierLookupClient, MockSimSwapLookupClient, MockIpIntelligenceClient
from .twilio import TwilioLookupClient
from .ipinfo import IpInfoClient

__all__ = [
    "CarrierInfo",
    "SimSwapInfo",
    "IpIntelligence",
    "CarrierLookupClient",
    "SimSwapLookupClient",
    "IpIntelligenceClient",
    "MockCarrierLookupClient",
    "MockSimSwapLookupClient",
    "MockIpIntelligenceClient",
    "TwilioLookupClient",
    "IpInfoClient",
]
