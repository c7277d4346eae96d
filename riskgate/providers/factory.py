"""
Provider Factory

Wires providers to lookup clients: deterministic mocks in mock mode,
Twilio Lookup v2 and ipinfo.io otherwise.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Callable, Optional

from ..clients import (
    CarrierLookupClient,
    IpInfoClient,
    IpIntelligenceClient,
    MockCarrierLookupClient,
    MockIpIntelligenceClient,
    MockSimSwapLookupClient,
    SimSwapLookupClient,
    TwilioLookupClient,
)
from ..config import Settings
from .base import SignalProvider
from .behavioral import BehavioralProvider
from .device import DeviceProvider
from .geo_ip import GeoIpProvider
from .phone_carrier import PhoneCarrierProvider
from .sim_swap import SimSwapProvider

logger = logging.getLogger("riskgate.providers")


@dataclass
class ProviderSet:
    """Providers plus the lookup clients they hold open."""
    providers: list[SignalProvider]
    clients: list = field(default_factory=list)

    async def aclose(self) -> None:
        for client in self.clients:
            await client.aclose()


def build_providers(
    settings: Settings,
    carrier_client: Optional[CarrierLookupClient] = None,
    sim_swap_client: Optional[SimSwapLookupClient] = None,
    ip_client: Optional[IpIntelligenceClient] = None,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> ProviderSet:
    """
    Build the five built-in providers.

    Clients passed explicitly win over the ones selected by settings.
    """
    clients: list = []

    if settings.mock_mode:
        carrier_client = carrier_client or MockCarrierLookupClient(clock)
        sim_swap_client = sim_swap_client or MockSimSwapLookupClient(clock)
        ip_client = ip_client or MockIpIntelligenceClient()
        logger.info("Signal providers using mock lookups")
    else:
        if carrier_client is None or sim_swap_client is None:
            twilio = TwilioLookupClient(
                account_sid=settings.twilio_account_sid or "",
                auth_token=settings.twilio_auth_token or "",
                base_url=settings.twilio_lookup_base_url,
                timeout_seconds=settings.lookup_http_timeout_seconds,
            )
            clients.append(twilio)
            carrier_client = carrier_client or twilio
            sim_swap_client = sim_swap_client or twilio
        if ip_client is None:
            ip_client = IpInfoClient(
                token=settings.ipinfo_token,
                base_url=settings.ipinfo_base_url,
                timeout_seconds=settings.lookup_http_timeout_seconds,
            )
            clients.append(ip_client)
        logger.info("Signal providers using Twilio Lookup and ipinfo.io")

    providers: list[SignalProvider] = [
        PhoneCarrierProvider(
            carrier_client,
            default_country_code=settings.phone_default_country_code,
            national_number_length=settings.phone_national_number_length,
            trusted_carriers=settings.trusted_carriers,
            voip_carriers=settings.voip_carriers,
            recent_port_days=settings.recent_port_days,
            clock=clock,
        ),
        GeoIpProvider(
            ip_client,
            distance_saturation_km=settings.geo_distance_saturation_km,
            high_risk_countries=settings.high_risk_countries,
            clock=clock,
        ),
        DeviceProvider(first_seen_score=settings.device_first_seen_score),
        BehavioralProvider(full_confidence_samples=settings.behavioral_full_confidence_samples),
        SimSwapProvider(
            sim_swap_client,
            recent_days=settings.sim_swap_recent_days,
            window_days=settings.sim_swap_window_days,
            default_country_code=settings.phone_default_country_code,
            national_number_length=settings.phone_national_number_length,
            clock=clock,
        ),
    ]
    return ProviderSet(providers=providers, clients=clients)
