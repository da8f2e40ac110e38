from typing import Optional
from uuid import UUID

from loguru import logger
from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from app.core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    OnboardingValidationError,
)
from app.enums.customer_status import CustomerStatus, can_transition
from app.models import Account, Customer, User
from app.services.kyc.audit_service import AuditService


class CustomerService:
    @staticmethod
    async def get_customer(customer_id: UUID) -> Customer:
        customer = await Customer.get_or_none(id=customer_id).prefetch_related(
            "profile_image", "id_front_image", "id_back_image"
        )
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    @staticmethod
    async def get_account(customer_id: UUID) -> Optional[Account]:
        return await Account.get_or_none(customer_id=customer_id)

    @staticmethod
    async def list_customers(
        page: int = 1,
        page_size: int = 20,
        status: Optional[CustomerStatus] = None,
        search: Optional[str] = None
    ) -> tuple[list[Customer], int]:
        """Customers newest first, optionally filtered by status and free text"""
        query = Customer.all()

        if status:
            query = query.filter(status=status)

        if search:
            query = query.filter(
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(email__icontains=search) |
                Q(national_id__icontains=search) |
                Q(phone__icontains=search)
            )

        total = await query.count()
        customers = await query.order_by("-created_at").offset((page - 1) * page_size).limit(page_size)

        return customers, total

    @staticmethod
    async def review(
        customer_id: UUID,
        status: CustomerStatus,
        reviewer: User,
        flag_reason: Optional[str] = None
    ) -> Customer:
        """
        Apply a reviewer decision.

        FLAGGED needs a reason; leaving FLAGGED clears it. VERIFIED can only be
        reached through OTP verification, never from here.
        """
        flag_reason = (flag_reason or "").strip() or None

        async with in_transaction() as conn:
            customer = await Customer.filter(id=customer_id).using_db(conn).select_for_update().first()
            if customer is None:
                raise NotFoundError("Customer", customer_id)

            previous = customer.status
            if status == previous:
                if status != CustomerStatus.FLAGGED:
                    return customer
            elif not can_transition(previous, status, by_review=True):
                raise InvalidStatusTransitionError(previous.value, status.value)

            if status == CustomerStatus.FLAGGED and not flag_reason:
                raise OnboardingValidationError({"flag_reason": ["required when flagging a customer"]})

            customer.status = status
            customer.flag_reason = flag_reason if status == CustomerStatus.FLAGGED else None
            await customer.save(using_db=conn, update_fields=["status", "flag_reason", "updated_at"])
            await AuditService.log_status_change(
                customer.id, previous.value, status.value,
                actor=reviewer, reason=customer.flag_reason, connection=conn
            )

        logger.info(f"Customer {customer.id} moved {previous.value} -> {status.value} by {reviewer.email}")
        return customer
