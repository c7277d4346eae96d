"""
Geo / IP Provider

Detects location anomalies for a login:
1. Distance from the identity's last known-good location
2. Impossible travel since the last allowed login
3. Anonymizers (VPN, proxy, hosting/datacenter IPs)
4. High-risk countries
5. Tor exit nodes (kill-switch)

Key signals:
- Haversine distance to baseline location, saturating at a configured range
- Travel speed implied by distance / time since last_seen_at
"""

from datetime import datetime, UTC
from math import radians, sin, cos, sqrt, atan2
from typing import Callable, Iterable, Optional

from ..clients import IpIntelligenceClient
from ..schemas import AttemptContext, EvidenceCodes, IdentityBaseline, ProviderNames, Signal
from .base import SignalBuilder, SignalProvider


# Maximum reasonable travel speed (km/h)
MAX_TRAVEL_SPEED_KMH = 1000  # Allows for air travel

DISTANCE_WEIGHT = 0.6
VPN_SCORE = 0.3
PROXY_SCORE = 0.2
HOSTING_SCORE = 0.2
HIGH_RISK_COUNTRY_SCORE = 0.2
IMPOSSIBLE_TRAVEL_SCORE = 0.2

# Distance below which a login counts as "same place"
LOCATION_MISMATCH_KM = 100.0

NO_BASELINE_CONFIDENCE = 0.5


def calculate_distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """
    Calculate distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates
        lat2, lon2: Second point coordinates

    Returns:
        Distance in kilometers
    """
    R = 6371  # Earth's radius in km

    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return R * c


class GeoIpProvider(SignalProvider):
    """
    Scores where a login comes from relative to the identity baseline.

    Without a baseline location the distance check cannot run, so the
    signal is reported with reduced confidence.
    """

    name = ProviderNames.GEO_IP

    def __init__(
        self,
        client: IpIntelligenceClient,
        distance_saturation_km: float = 5000.0,
        high_risk_countries: Iterable[str] = (),
        max_travel_speed_kmh: float = MAX_TRAVEL_SPEED_KMH,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.client = client
        self.distance_saturation_km = distance_saturation_km
        self.high_risk_countries = {c.upper() for c in high_risk_countries}
        self.max_speed = max_travel_speed_kmh
        self.clock = clock

    def is_applicable(self, context: AttemptContext) -> bool:
        return context.client_ip is not None

    def distance_risk(self, distance_km: float) -> float:
        """Monotonic, saturating map from distance to [0, 1]."""
        return min(1.0, max(0.0, distance_km) / self.distance_saturation_km)

    async def score(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
    ) -> Signal:
        info = await self.client.lookup_ip(context.client_ip)
        result = SignalBuilder(self.name)

        if info.location is not None:
            result.observed["location"] = info.location.model_dump()

        # =======================================================================
        # Kill-switch: Tor exit node
        # =======================================================================
        if info.is_tor:
            result.add(1.0, EvidenceCodes.TOR_EXIT_NODE)
            return result.build()

        # =======================================================================
        # Check 1: Distance from baseline location
        # =======================================================================
        previous = baseline.last_known_location if baseline else None
        if previous is None or info.location is None:
            result.confidence = NO_BASELINE_CONFIDENCE
            result.note(EvidenceCodes.NO_BASELINE_LOCATION)
        else:
            distance_km = calculate_distance_km(
                info.location.latitude,
                info.location.longitude,
                previous.latitude,
                previous.longitude,
            )
            result.observed["distance_km"] = round(distance_km, 1)
            result.score += DISTANCE_WEIGHT * self.distance_risk(distance_km)
            if distance_km > LOCATION_MISMATCH_KM:
                result.note(EvidenceCodes.LOCATION_MISMATCH)

                # Check 2: Impossible travel since last allowed login
                hours = (self.clock() - baseline.last_seen_at).total_seconds() / 3600
                if hours > 0 and distance_km / hours > self.max_speed:
                    result.add(IMPOSSIBLE_TRAVEL_SCORE, EvidenceCodes.IMPOSSIBLE_TRAVEL)

        # =======================================================================
        # Check 3: Anonymizers
        # =======================================================================
        if info.is_vpn:
            result.add(VPN_SCORE, EvidenceCodes.VPN)
        if info.is_proxy:
            result.add(PROXY_SCORE, EvidenceCodes.PROXY)
        if info.is_hosting:
            result.add(HOSTING_SCORE, EvidenceCodes.HOSTING_IP)

        # =======================================================================
        # Check 4: High-risk country
        # =======================================================================
        country = info.location.country if info.location else None
        if country and country.upper() in self.high_risk_countries:
            result.add(HIGH_RISK_COUNTRY_SCORE, EvidenceCodes.HIGH_RISK_COUNTRY)

        return result.build()
