"""
Onboarding error hierarchy.

Every error carries a stable ``code``, a coarse ``kind`` (the result class the
caller sees), an HTTP status and optional ``details``. Routes never build error
responses themselves; the handler registered in ``app.main`` renders
``OnboardingError.to_dict()``.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    success = "success"
    validation_failure = "validation_failure"
    mismatch = "mismatch"
    conflict = "conflict"
    not_found = "not_found"
    unauthorized = "unauthorized"
    rate_limited = "rate_limited"
    internal_error = "internal_error"


class OnboardingError(Exception):
    """Base class for all errors surfaced by the onboarding pipeline"""

    code = "INTERNAL_ERROR"
    kind = ErrorKind.internal_error
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        self.message = message
        self.details = details or {}
        if code:
            self.code = code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "error",
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing or invalid"""


# =============================================================================
# Client-fixable (4xx)
# =============================================================================

class OnboardingValidationError(OnboardingError):
    """
    One or more submitted fields failed validation.

    ``fields`` maps each failing field to the list of its messages, so the
    client sees every problem at once.
    """
    code = "VALIDATION_ERROR"
    kind = ErrorKind.validation_failure
    status_code = 400

    def __init__(self, fields: Dict[str, list[str]], message: str = "Validation failed."):
        self.fields = fields
        super().__init__(message, details={"fields": fields})


class MismatchError(OnboardingError):
    """Submitted data contradicts what OCR read from the identity document"""
    code = "OCR_MISMATCH"
    kind = ErrorKind.mismatch
    status_code = 422

    def __init__(self, field: str, submitted: str, extracted: str):
        self.field = field
        label = "National ID" if field == "national_id" else "Name"
        super().__init__(
            f"{label} does not match the identity document. Correct the submission or escalate for manual review.",
            details={"field": field, "submitted": submitted, "extracted": extracted},
            code=f"{field.upper()}_MISMATCH",
        )


class ConflictError(OnboardingError):
    """A uniqueness constraint would be violated"""
    code = "CONFLICT"
    kind = ErrorKind.conflict
    status_code = 409

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(
            message or f"A customer with this {field.replace('_', ' ')} already exists.",
            details={"field": field},
        )


class AuthorizationError(OnboardingError):
    code = "FORBIDDEN"
    kind = ErrorKind.unauthorized
    status_code = 403


class NotFoundError(OnboardingError):
    code = "NOT_FOUND"
    kind = ErrorKind.not_found
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found.",
            details={"resource": resource, "identifier": str(identifier)},
        )


class AlreadyVerifiedError(OnboardingError):
    code = "ALREADY_VERIFIED"
    kind = ErrorKind.conflict
    status_code = 409

    def __init__(self, customer_id: Any):
        super().__init__("Customer is already verified.", details={"customer_id": str(customer_id)})


class CustomerNotPendingError(OnboardingError):
    code = "NOT_PENDING"
    kind = ErrorKind.conflict
    status_code = 409

    def __init__(self, customer_id: Any, status: str):
        super().__init__(
            f"Customer is {status}; only pending customers can be verified.",
            details={"customer_id": str(customer_id), "status": status},
        )


class InvalidStatusTransitionError(OnboardingError):
    code = "INVALID_STATUS_TRANSITION"
    kind = ErrorKind.conflict
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change status from {current} to {target}.",
            details={"from": current, "to": target},
        )


class TooManyAttemptsError(OnboardingError):
    code = "TOO_MANY_ATTEMPTS"
    kind = ErrorKind.rate_limited
    status_code = 429

    def __init__(self, attempts: int):
        super().__init__(
            "Too many failed attempts. Please contact support to unlock verification.",
            details={"attempts": attempts},
        )


class OtpExpiredError(OnboardingError):
    code = "OTP_EXPIRED"
    kind = ErrorKind.validation_failure
    status_code = 400

    def __init__(self, attempts: int):
        super().__init__(
            "Verification code expired. Please request a new code.",
            details={"attempts": attempts},
        )


class OtpInvalidError(OnboardingError):
    code = "OTP_INVALID"
    kind = ErrorKind.validation_failure
    status_code = 400

    def __init__(self, attempts: int):
        super().__init__("Invalid verification code.", details={"attempts": attempts})


class OtpMissingError(OnboardingError):
    code = "OTP_MISSING"
    kind = ErrorKind.validation_failure
    status_code = 400

    def __init__(self, attempts: int):
        super().__init__(
            "No active verification code. Please request a new code.",
            details={"attempts": attempts},
        )


# =============================================================================
# Infrastructure (5xx)
# =============================================================================

class InternalError(OnboardingError):
    """Store or infrastructure failure; details are logged, not returned"""

    def __init__(self, message: str = "Internal server error."):
        super().__init__(message)


class AllocationExhaustedError(InternalError):
    code = "ACCOUNT_ALLOCATION_FAILED"

    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a unique account number after {attempts} attempts.")


class ExtractionFailure(Exception):
    """The OCR engine could not produce text for an image; never shown to callers"""

    def __init__(self, locator: str, reason: str):
        self.locator = locator
        self.reason = reason
        super().__init__(f"Text extraction failed for {locator}: {reason}")
