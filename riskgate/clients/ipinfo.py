"""
ipinfo.io Client

Real IP intelligence lookups: GET {base}/{ip}/json?token=...
Location comes from the "loc" field ("lat,lon"); anonymizer flags from
the "privacy" block (vpn, proxy, tor, relay, hosting).
"""

import logging
from typing import Any, Optional

import httpx

from ..errors import ProviderError
from ..schemas import GeoLocation
from .base import IpIntelligence, IpIntelligenceClient

logger = logging.getLogger("riskgate.clients.ipinfo")


def _parse_loc(data: dict[str, Any]) -> Optional[GeoLocation]:
    loc = data.get("loc")
    if not loc:
        return None
    try:
        lat, lon = (float(part) for part in loc.split(","))
        return GeoLocation(
            latitude=lat,
            longitude=lon,
            country=data.get("country"),
            city=data.get("city"),
        )
    except ValueError:
        logger.debug("Unparseable ipinfo loc %r", loc)
        return None


class IpInfoClient(IpIntelligenceClient):
    """IP geolocation and privacy flags from ipinfo.io."""

    def __init__(
        self,
        token: Optional[str],
        base_url: str = "https://ipinfo.io",
        timeout_seconds: float = 2.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def lookup_ip(self, ip: str) -> IpIntelligence:
        params = {"token": self.token} if self.token else None
        try:
            response = await self.http.get(f"{self.base_url}/{ip}/json", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError("geo_ip", f"ipinfo HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise ProviderError("geo_ip", f"ipinfo request timeout: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError("geo_ip", f"ipinfo request failed: {e}") from e

        if data.get("bogon"):
            raise ProviderError("geo_ip", f"{ip} is a bogon address")

        privacy = data.get("privacy") or {}
        return IpIntelligence(
            ip=data.get("ip", ip),
            location=_parse_loc(data),
            is_vpn=bool(privacy.get("vpn", False)),
            is_tor=bool(privacy.get("tor", False)),
            is_proxy=bool(privacy.get("proxy", False) or privacy.get("relay", False)),
            is_hosting=bool(privacy.get("hosting", False)),
            organization=data.get("org"),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()
