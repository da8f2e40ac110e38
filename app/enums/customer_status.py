from enum import Enum


class CustomerStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    FLAGGED = "FLAGGED"


# Transitions a reviewer may apply by hand. PENDING -> VERIFIED only happens
# through OTP verification.
REVIEW_TRANSITIONS: dict[CustomerStatus, frozenset[CustomerStatus]] = {
    CustomerStatus.PENDING: frozenset({CustomerStatus.REJECTED, CustomerStatus.FLAGGED}),
    CustomerStatus.FLAGGED: frozenset({CustomerStatus.PENDING, CustomerStatus.REJECTED}),
    CustomerStatus.REJECTED: frozenset(),
    CustomerStatus.VERIFIED: frozenset(),
}

# Every transition the system can make, including OTP verification.
ALLOWED_TRANSITIONS: dict[CustomerStatus, frozenset[CustomerStatus]] = {
    **REVIEW_TRANSITIONS,
    CustomerStatus.PENDING: REVIEW_TRANSITIONS[CustomerStatus.PENDING] | {CustomerStatus.VERIFIED},
}


def can_transition(current: CustomerStatus, target: CustomerStatus, by_review: bool = False) -> bool:
    table = REVIEW_TRANSITIONS if by_review else ALLOWED_TRANSITIONS
    return target in table[current]
