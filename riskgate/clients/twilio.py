"""
Twilio Lookup v2 Clients

Real carrier and SIM swap lookups against Twilio Lookup v2:
GET {base}/{E.164 number}?Fields=line_type_intelligence,sim_swap

Lookup v2 reports line type and carrier but not porting history, so
real-mode carrier results leave `ported` unknown and the port-age
rule of the phone carrier provider only fires for lookups that report
it (the mock client).

Both clients share one httpx.AsyncClient; any transport error,
non-2xx status or unparseable body is raised as ProviderError so the
aggregator can degrade the signal.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from ..errors import ProviderError
from .base import CarrierInfo, CarrierLookupClient, SimSwapInfo, SimSwapLookupClient

logger = logging.getLogger("riskgate.clients.twilio")

VOIP_LINE_TYPES = {"fixedvoip", "nonfixedvoip", "voip"}


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _normalize_line_type(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    lowered = raw.lower()
    if lowered in VOIP_LINE_TYPES:
        return "voip"
    return lowered


class TwilioLookupClient(CarrierLookupClient, SimSwapLookupClient):
    """
    Carrier and SIM swap lookups via Twilio Lookup v2.

    Credentials come from settings; the HTTP client can be injected
    (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        base_url: str = "https://lookups.twilio.com/v2/PhoneNumbers",
        timeout_seconds: float = 2.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(
            auth=(account_sid, auth_token),
            timeout=timeout_seconds,
        )

    async def _fetch(self, provider: str, phone_number: str, fields: str) -> dict[str, Any]:
        url = f"{self.base_url}/+{phone_number.lstrip('+')}"
        try:
            response = await self.http.get(url, params={"Fields": fields})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(provider, f"Twilio HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise ProviderError(provider, f"Twilio request timeout: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(provider, f"Twilio request failed: {e}") from e

    async def lookup_carrier(self, phone_number: str) -> CarrierInfo:
        data = await self._fetch("phone_carrier", phone_number, "line_type_intelligence")

        line = data.get("line_type_intelligence") or {}

        # Lookup v2 has no porting data package; ported stays unknown
        return CarrierInfo(
            phone_number=phone_number,
            valid=bool(data.get("valid", False)),
            carrier_name=line.get("carrier_name"),
            line_type=_normalize_line_type(line.get("type")),
        )

    async def lookup_sim_swap(self, phone_number: str) -> SimSwapInfo:
        data = await self._fetch("sim_swap", phone_number, "sim_swap")

        sim_swap = data.get("sim_swap") or {}
        if sim_swap.get("error_code"):
            raise ProviderError("sim_swap", f"Twilio SIM swap error {sim_swap['error_code']}")

        last = sim_swap.get("last_sim_swap") or {}
        swapped_at = _parse_timestamp(last.get("last_sim_swap_date"))
        swapped = bool(last.get("swapped_in_period")) or swapped_at is not None

        return SimSwapInfo(
            phone_number=phone_number,
            swapped=swapped,
            swapped_at=swapped_at,
            confidence=1.0 if last else 0.8,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()
