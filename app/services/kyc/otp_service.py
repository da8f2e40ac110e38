"""
Email OTP issuing and checking.

Codes are never stored: the customer row keeps an HMAC-SHA256 of
``"<code>|<expiry ISO-8601>"`` plus the expiry, so a code is only valid
together with the expiry it was issued with.
"""
import hmac
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.core.config import Settings
from app.core.exceptions import ConfigurationError
from app.enums.otp_check import OtpCheck

OTP_MIN = 100000
OTP_MAX = 999999


@dataclass(frozen=True)
class OtpConfig:
    secret: str
    ttl_minutes: int = 10

    def __post_init__(self):
        if not self.secret or not self.secret.strip():
            raise ConfigurationError("OTP signing secret must not be empty")
        if self.ttl_minutes <= 0:
            raise ConfigurationError("OTP lifetime must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "OtpConfig":
        return cls(secret=settings.EMAIL_OTP_SECRET, ttl_minutes=settings.OTP_TTL_MINUTES)


@dataclass(frozen=True)
class OtpIssue:
    code: str
    hash: str
    expires_at: datetime


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_iso(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision, e.g. 2025-01-31T09:15:00.000Z"""
    value = _truncate_to_millis(_as_utc(value))
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class OtpManager:
    def __init__(self, config: OtpConfig):
        self._key = config.secret.encode("utf-8")
        self.ttl = timedelta(minutes=config.ttl_minutes)

    def _digest(self, code: str, expires_at: datetime) -> str:
        message = f"{code}|{to_iso(expires_at)}".encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    @staticmethod
    def generate_code() -> str:
        return str(secrets.randbelow(OTP_MAX - OTP_MIN + 1) + OTP_MIN)

    def issue(self, now: Optional[datetime] = None) -> OtpIssue:
        """Generate a 6-digit code, its expiry and the hash to persist"""
        now = _as_utc(now or datetime.now(timezone.utc))
        expires_at = _truncate_to_millis(now + self.ttl)
        code = self.generate_code()
        return OtpIssue(code=code, hash=self._digest(code, expires_at), expires_at=expires_at)

    def verify(
        self,
        code: str,
        stored_hash: Optional[str],
        stored_expiry: Optional[datetime],
        now: Optional[datetime] = None
    ) -> OtpCheck:
        if not stored_hash or not stored_expiry:
            return OtpCheck.MISSING

        now = _as_utc(now or datetime.now(timezone.utc))
        if now > _as_utc(stored_expiry):
            return OtpCheck.EXPIRED

        expected = self._digest(code.strip(), stored_expiry)
        if hmac.compare_digest(expected.encode("utf-8"), stored_hash.encode("utf-8")):
            return OtpCheck.VALID
        return OtpCheck.INVALID
