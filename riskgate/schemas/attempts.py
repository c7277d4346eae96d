"""
Login Attempt Schemas

Defines the AttemptContext structure for incoming login attempts.
This is the primary input to the risk pipeline: identity fields plus
whatever optional signals the login UI managed to collect (phone
number, device fingerprint, keystroke timings).
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from .base import WireModel


# Keys the typing capture reports for corrections
CORRECTION_KEYS = frozenset({"Backspace", "Delete"})


class DeviceClass(str, Enum):
    """Coarse device class reported by the login UI."""
    MOBILE = "mobile"
    DESKTOP = "desktop"
    TABLET = "tablet"


class TypingSample(WireModel):
    """
    Single keystroke captured by the login form.

    Timestamps are client-side milliseconds. Dwell time is
    release - press; flight time is measured between the previous
    key release and this key press.
    """
    key: str = Field(
        default="",
        description="Key identifier (e.g. 'a', 'Backspace')",
    )
    pressed_at_ms: float = Field(
        ...,
        ge=0,
        description="Key-down timestamp in milliseconds",
    )
    released_at_ms: Optional[float] = Field(
        default=None,
        ge=0,
        description="Key-up timestamp in milliseconds",
    )

    @property
    def dwell_ms(self) -> Optional[float]:
        """How long the key was held down."""
        if self.released_at_ms is None:
            return None
        return self.released_at_ms - self.pressed_at_ms

    @property
    def is_correction(self) -> bool:
        """Whether this keystroke deletes previously typed text."""
        return self.key in CORRECTION_KEYS


class AttemptContext(WireModel):
    """
    Login attempt as received from the login UI.

    identity_key and client_ip are required; every other field is
    optional and gates the provider that consumes it. Required fields
    are checked by the engine (MalformedAttemptContext) rather than by
    the model, so the API can answer 400 instead of 422.
    """
    identity_key: Optional[str] = Field(
        default=None,
        description="Email or username identifying the account",
    )
    client_ip: Optional[str] = Field(
        default=None,
        description="Client IP address as seen by the edge",
    )
    phone_number: Optional[str] = Field(
        default=None,
        description="Phone number supplied for the login (any format)",
    )
    device_fingerprint: Optional[str] = Field(
        default=None,
        description="Opaque device fingerprint collected client-side",
    )
    device_class: Optional[DeviceClass] = Field(
        default=None,
        description="Device class reported by the client",
    )
    typing_samples: list[TypingSample] = Field(
        default_factory=list,
        description="Keystroke timings captured while typing the password/phrase",
    )
    typed_text_length: Optional[int] = Field(
        default=None,
        ge=0,
        description="Length of the final typed text (defaults to non-correction keystrokes)",
    )

    @field_validator("identity_key", "client_ip", "phone_number", "device_fingerprint")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def missing_required_fields(self) -> list[str]:
        """Wire names of required fields that are absent or blank."""
        missing = []
        if not self.identity_key:
            missing.append("identityKey")
        if not self.client_ip:
            missing.append("clientIp")
        return missing

    @property
    def has_phone(self) -> bool:
        return self.phone_number is not None

    @property
    def has_device(self) -> bool:
        return self.device_fingerprint is not None

    @property
    def timed_keystrokes(self) -> int:
        return len(self.typing_samples)
