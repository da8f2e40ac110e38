# app/enums/audit_action.py
from enum import Enum

class AuditAction(str, Enum):
    CREATED = "created"
    OTP_ISSUED = "otp_issued"
    OTP_FAILED = "otp_failed"
    VERIFIED = "verified"
    STATUS_CHANGE = "status_change"
