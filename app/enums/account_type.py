from enum import Enum


class AccountType(str, Enum):
    CURRENT = "current"
    SAVINGS = "savings"
