# Signal providers
from .base import SignalProvider, SignalBuilder
from .phone_carrier import PhoneCarrierProvider, normalize_phone_number
from .geo_ip import GeoIpProvider, calculate_distance_km
from .device import DeviceProvider
from .behavioral import BehavioralProvider, TypingMetrics, compute_typing_metrics
from .sim_swap import SimSwapProvider
from .factory import ProviderSet, build_providers

__all__ = [
    "SignalProvider",
    "SignalBuilder",
    "PhoneCarrierProvider",
    "normalize_phone_number",
    "GeoIpProvider",
    "calculate_distance_km",
    "DeviceProvider",
    "BehavioralProvider",
    "TypingMetrics",
    "compute_typing_metrics",
    "SimSwapProvider",
    "ProviderSet",
    "build_providers",
]
