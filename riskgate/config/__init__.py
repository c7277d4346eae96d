# Configuration Module
from .settings import Settings, get_settings, settings
from .policy import (
    RiskPolicy,
    ProviderConfig,
    DEFAULT_POLICY,
    build_policy,
    load_policy,
)

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "RiskPolicy",
    "ProviderConfig",
    "DEFAULT_POLICY",
    "build_policy",
    "load_policy",
]
