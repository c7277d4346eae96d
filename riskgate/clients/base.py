"""
Lookup Client Interfaces

Signal providers depend on these interfaces, never on a concrete API.
Each interface has a real implementation (external HTTP API via httpx)
and a deterministic mock used in demo/mock mode and in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..schemas import GeoLocation


@dataclass(frozen=True)
class CarrierInfo:
    """Carrier/line-type lookup result for a phone number."""
    phone_number: str
    valid: bool
    carrier_name: Optional[str] = None
    line_type: Optional[str] = None  # mobile, landline, voip
    ported: Optional[bool] = None  # None: the lookup does not report porting
    port_date: Optional[datetime] = None

    @property
    def is_voip(self) -> bool:
        return (self.line_type or "").lower() == "voip"


@dataclass(frozen=True)
class SimSwapInfo:
    """Carrier-reported SIM replacement for a phone number."""
    phone_number: str
    swapped: bool
    swapped_at: Optional[datetime] = None
    confidence: float = 1.0


@dataclass(frozen=True)
class IpIntelligence:
    """Geolocation and anonymizer flags for an IP address."""
    ip: str
    location: Optional[GeoLocation] = None
    is_vpn: bool = False
    is_tor: bool = False
    is_proxy: bool = False
    is_hosting: bool = False
    organization: Optional[str] = None
    extra: dict = field(default_factory=dict)


class CarrierLookupClient(ABC):
    """Resolves carrier, line type and porting state of a phone number."""

    @abstractmethod
    async def lookup_carrier(self, phone_number: str) -> CarrierInfo:
        """
        Look up a normalized phone number (digits, country code first).

        Raises:
            ProviderError: on network/API failure
        """
        pass

    async def aclose(self) -> None:
        """Release network resources (no-op by default)."""
        return None


class SimSwapLookupClient(ABC):
    """Reports recent SIM replacement events for a phone number."""

    @abstractmethod
    async def lookup_sim_swap(self, phone_number: str) -> SimSwapInfo:
        """
        Look up SIM swap history for a phone number.

        Raises:
            ProviderError: on network/API failure
        """
        pass

    async def aclose(self) -> None:
        return None


class IpIntelligenceClient(ABC):
    """Resolves location and anonymizer flags of an IP address."""

    @abstractmethod
    async def lookup_ip(self, ip: str) -> IpIntelligence:
        """
        Look up an IP address.

        Raises:
            ProviderError: on network/API failure
        """
        pass

    async def aclose(self) -> None:
        return None
