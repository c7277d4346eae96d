"""
Phone Carrier Provider

Scores the phone number supplied with a login:
1. Malformed numbers (not E.164-shaped after normalization)
2. Numbers the carrier lookup reports as invalid
3. VoIP lines and carriers outside the trusted list
4. Recent number porting

Normalization strips punctuation and prefixes the default country code
to bare national numbers, so "98765 43210" and "+91-9876543210" look up
the same subscriber.
"""

import re
from datetime import datetime, UTC
from typing import Callable, Iterable, Optional

from ..clients import CarrierLookupClient
from ..schemas import AttemptContext, EvidenceCodes, IdentityBaseline, ProviderNames, Signal
from .base import SignalBuilder, SignalProvider


# E.164: up to 15 digits, country code never starts with 0
E164_DIGITS = re.compile(r"^[1-9]\d{7,14}$")
PHONE_CHARACTERS = re.compile(r"^[\d\s\-().+]+$")

VOIP_SCORE = 0.4
UNTRUSTED_CARRIER_SCORE = 0.2
RECENT_PORT_SCORE = 0.3
OLD_PORT_SCORE = 0.1


def normalize_phone_number(
    raw: str,
    default_country_code: str = "91",
    national_number_length: int = 10,
) -> Optional[str]:
    """
    Normalize a phone number to E.164 digits (no leading '+').

    Returns:
        Digits with country code, or None if the input is not a phone number
    """
    raw = raw.strip()
    if not raw or not PHONE_CHARACTERS.match(raw):
        return None

    digits = re.sub(r"\D", "", raw)
    if not raw.startswith("+"):
        if digits.startswith("00"):
            # International dialing prefix
            digits = digits[2:]
        elif digits.startswith("0") and len(digits) == national_number_length + 1:
            # Trunk prefix on a national number
            digits = default_country_code + digits[1:]
        elif len(digits) == national_number_length:
            digits = default_country_code + digits

    return digits if E164_DIGITS.match(digits) else None


def _names_match(name: Optional[str], candidates: Iterable[str]) -> bool:
    if not name:
        return False
    return any(
        re.search(rf"\b{re.escape(candidate)}\b", name, re.IGNORECASE)
        for candidate in candidates
    )


class PhoneCarrierProvider(SignalProvider):
    """
    Scores carrier, line type and porting state of the login phone number.

    Confidence is always 1.0: an answer from the carrier database (or a
    number that cannot possibly be valid) is authoritative.
    """

    name = ProviderNames.PHONE_CARRIER

    def __init__(
        self,
        client: CarrierLookupClient,
        default_country_code: str = "91",
        national_number_length: int = 10,
        trusted_carriers: Iterable[str] = (),
        voip_carriers: Iterable[str] = (),
        recent_port_days: int = 30,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.client = client
        self.default_country_code = default_country_code
        self.national_number_length = national_number_length
        self.trusted_carriers = list(trusted_carriers)
        self.voip_carriers = list(voip_carriers)
        self.recent_port_days = recent_port_days
        self.clock = clock

    def is_applicable(self, context: AttemptContext) -> bool:
        return context.has_phone

    async def score(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
    ) -> Signal:
        result = SignalBuilder(self.name)

        number = normalize_phone_number(
            context.phone_number,
            self.default_country_code,
            self.national_number_length,
        )
        if number is None:
            result.add(1.0, EvidenceCodes.INVALID_FORMAT)
            return result.build()

        result.observed["normalized_number"] = number
        info = await self.client.lookup_carrier(number)

        if not info.valid:
            result.add(1.0, EvidenceCodes.INVALID_NUMBER)
            return result.build()

        result.observed["carrier"] = info.carrier_name
        result.observed["line_type"] = info.line_type

        # =======================================================================
        # Check 1: VoIP line
        # =======================================================================
        if info.is_voip or _names_match(info.carrier_name, self.voip_carriers):
            result.add(VOIP_SCORE, EvidenceCodes.VOIP_LINE)

        # =======================================================================
        # Check 2: Carrier reputation
        # =======================================================================
        if not _names_match(info.carrier_name, self.trusted_carriers):
            result.add(UNTRUSTED_CARRIER_SCORE, EvidenceCodes.UNKNOWN_CARRIER)

        # =======================================================================
        # Check 3: Porting
        # =======================================================================
        if info.ported or info.port_date is not None:
            recent = (
                info.port_date is not None
                and (self.clock() - info.port_date).days < self.recent_port_days
            )
            if recent:
                result.add(RECENT_PORT_SCORE, EvidenceCodes.RECENTLY_PORTED)
            else:
                result.add(OLD_PORT_SCORE, EvidenceCodes.PORTED)

        return result.build()
