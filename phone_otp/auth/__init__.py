"""
OTP Login Flow
==============
Issuer, verifier and the factory that wires them together.
"""

from .issuer import OtpIssuer
from .verifier import OtpVerifier
from .factory import OtpFlow, build_otp_flow

__all__ = [
    "OtpIssuer",
    "OtpVerifier",
    "OtpFlow",
    "build_otp_flow",
]
