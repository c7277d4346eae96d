"""
riskgate - real-time login risk scoring engine.

Aggregates independent risk signals (phone carrier, IP/geo, device,
typing rhythm, SIM swap) into one confidence-weighted score and an
ALLOW / CHALLENGE_OTP / BLOCK decision.
"""

__version__ = "1.0.0"
