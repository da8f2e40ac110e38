import secrets
from typing import Awaitable, Callable, Optional

from loguru import logger
from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from app.core.exceptions import AllocationExhaustedError
from app.enums.account_type import AccountType
from app.models import Account, Customer

ACCOUNT_NUMBER_MIN = 100000000
ACCOUNT_NUMBER_MAX = 999999999


class AccountNumberAllocator:
    """
    Hands out 9-digit account numbers that are unique across ``accounts``.

    The unique index on ``account_number`` is the source of truth: the
    existence check only skips obvious collisions, and a concurrent insert of
    the same number surfaces as IntegrityError and is retried.
    """

    def __init__(self, max_retries: int = 1000):
        self.max_retries = max_retries

    @staticmethod
    def generate() -> str:
        return str(secrets.randbelow(ACCOUNT_NUMBER_MAX - ACCOUNT_NUMBER_MIN + 1) + ACCOUNT_NUMBER_MIN)

    @staticmethod
    async def is_taken(number: str, connection: Optional[BaseDBAsyncClient] = None) -> bool:
        return await Account.filter(account_number=number).using_db(connection).exists()

    async def allocate(
        self,
        is_taken: Optional[Callable[[str], Awaitable[bool]]] = None
    ) -> str:
        """Return a number that ``is_taken`` reports as free"""
        check = is_taken or self.is_taken
        for attempt in range(1, self.max_retries + 1):
            candidate = self.generate()
            if not await check(candidate):
                return candidate
            logger.debug(f"Account number collision on attempt {attempt}, retrying")
        raise AllocationExhaustedError(self.max_retries)

    async def create_account(
        self,
        customer: Customer,
        connection: Optional[BaseDBAsyncClient] = None,
        account_type: AccountType = AccountType.CURRENT
    ) -> Account:
        """
        Insert an Account with a fresh number for ``customer``.

        Each insert runs in its own savepoint so a lost race on the unique
        index does not poison the caller's transaction.
        """
        for attempt in range(1, self.max_retries + 1):
            candidate = await self.allocate(lambda number: self.is_taken(number, connection))
            try:
                async with in_transaction() as savepoint:
                    account = await Account.create(
                        account_number=candidate,
                        customer=customer,
                        account_type=account_type,
                        using_db=savepoint
                    )
                logger.info(f"Allocated account {account.account_number} for customer {customer.id}")
                return account
            except IntegrityError:
                if await Account.filter(customer_id=customer.id).using_db(connection).exists():
                    raise
                logger.warning(f"Account number {candidate} taken concurrently (attempt {attempt}), retrying")
        raise AllocationExhaustedError(self.max_retries)
