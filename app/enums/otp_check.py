from enum import Enum


class OtpCheck(str, Enum):
    """Outcome of comparing a submitted code with the stored OTP state"""
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"
    MISSING = "missing"
