"""
Mock Lookup Clients

Deterministic stand-ins for the carrier, SIM swap and IP intelligence
APIs. Scenarios are keyed on substrings of the input so the login demo
can trigger each risk path on purpose:

Phone numbers:
- contains "999": VoIP on an unknown carrier, ported 5 days ago, SIM swapped 2 days ago
- contains "888": VI, ported 12 days ago, SIM swapped 20 days ago
- contains "666": Google Voice VoIP line, not ported, no swap
- contains "777": Jio, clean
- anything else: Airtel, clean

IP addresses:
- contains "tor": Tor exit node
- contains "vpn": commercial VPN in San Francisco
- contains "high-risk": Lagos, Nigeria
- contains "medium-risk": Toronto, Canada
- anything else: Mumbai, India
"""

from datetime import datetime, timedelta, UTC
from typing import Callable, Optional

from ..schemas import GeoLocation
from .base import (
    CarrierInfo,
    CarrierLookupClient,
    IpIntelligence,
    IpIntelligenceClient,
    SimSwapInfo,
    SimSwapLookupClient,
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


Clock = Callable[[], datetime]


# (carrier, line_type, port_age_days)
CARRIER_SCENARIOS: dict[str, tuple[str, str, Optional[int]]] = {
    "999": ("Unknown VoIP", "voip", 5),
    "888": ("VI", "mobile", 12),
    "666": ("Google Voice", "voip", None),
    "777": ("Jio", "mobile", None),
}
DEFAULT_CARRIER = ("Airtel", "mobile", None)

# (swap_age_days, confidence)
SIM_SWAP_SCENARIOS: dict[str, tuple[Optional[int], float]] = {
    "999": (2, 0.95),
    "888": (20, 0.6),
}
NO_SWAP_CONFIDENCE = 0.9

LOCATIONS = {
    "new_york": GeoLocation(latitude=40.7128, longitude=-74.0060, country="US", city="New York"),
    "lagos": GeoLocation(latitude=6.5244, longitude=3.3792, country="NG", city="Lagos"),
    "toronto": GeoLocation(latitude=43.6532, longitude=-79.3832, country="CA", city="Toronto"),
    "san_francisco": GeoLocation(latitude=37.7749, longitude=-122.4194, country="US", city="San Francisco"),
    "mumbai": GeoLocation(latitude=19.0760, longitude=72.8777, country="IN", city="Mumbai"),
    "frankfurt": GeoLocation(latitude=50.1109, longitude=8.6821, country="DE", city="Frankfurt"),
}


def _match(value: str, scenarios: dict) -> Optional[str]:
    for marker in scenarios:
        if marker in value:
            return marker
    return None


class MockCarrierLookupClient(CarrierLookupClient):
    """Carrier lookup driven by substrings of the phone number."""

    def __init__(self, clock: Clock = _utc_now):
        self.clock = clock

    async def lookup_carrier(self, phone_number: str) -> CarrierInfo:
        marker = _match(phone_number, CARRIER_SCENARIOS)
        carrier, line_type, port_age_days = (
            CARRIER_SCENARIOS[marker] if marker else DEFAULT_CARRIER
        )
        port_date = None
        if port_age_days is not None:
            port_date = self.clock() - timedelta(days=port_age_days)

        return CarrierInfo(
            phone_number=phone_number,
            valid=True,
            carrier_name=carrier,
            line_type=line_type,
            ported=port_date is not None,
            port_date=port_date,
        )


class MockSimSwapLookupClient(SimSwapLookupClient):
    """SIM swap lookup driven by substrings of the phone number."""

    def __init__(self, clock: Clock = _utc_now):
        self.clock = clock

    async def lookup_sim_swap(self, phone_number: str) -> SimSwapInfo:
        marker = _match(phone_number, SIM_SWAP_SCENARIOS)
        if marker is None:
            return SimSwapInfo(
                phone_number=phone_number,
                swapped=False,
                confidence=NO_SWAP_CONFIDENCE,
            )

        age_days, confidence = SIM_SWAP_SCENARIOS[marker]
        return SimSwapInfo(
            phone_number=phone_number,
            swapped=True,
            swapped_at=self.clock() - timedelta(days=age_days),
            confidence=confidence,
        )


class MockIpIntelligenceClient(IpIntelligenceClient):
    """IP intelligence driven by substrings of the address."""

    async def lookup_ip(self, ip: str) -> IpIntelligence:
        if "tor" in ip:
            return IpIntelligence(
                ip=ip,
                location=LOCATIONS["frankfurt"],
                is_tor=True,
                is_hosting=True,
                organization="Tor exit relay",
            )
        if "vpn" in ip:
            return IpIntelligence(
                ip=ip,
                location=LOCATIONS["san_francisco"],
                is_vpn=True,
                organization="NordVPN",
            )
        if "high-risk" in ip:
            return IpIntelligence(ip=ip, location=LOCATIONS["lagos"], organization="MTN Nigeria")
        if "medium-risk" in ip:
            return IpIntelligence(ip=ip, location=LOCATIONS["toronto"], organization="Rogers")
        return IpIntelligence(ip=ip, location=LOCATIONS["mumbai"], organization="Reliance Jio")
