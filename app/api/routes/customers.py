# app/api/routes/customers.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import permission_required
from app.enums.customer_status import CustomerStatus
from app.models.user import User
from app.schemas.customer import (
    AccountResponse,
    AuditLogResponse,
    CustomerDetail,
    CustomerListItem,
    CustomerListResponse,
    CustomerReviewUpdate,
    DocumentResponse,
)
from app.services.kyc.audit_service import AuditService
from app.services.kyc.customer_service import CustomerService

router = APIRouter()


def _detail(customer, account) -> CustomerDetail:
    documents = [
        DocumentResponse.model_validate(doc)
        for doc in (customer.profile_image, customer.id_front_image, customer.id_back_image)
    ]
    data = {
        name: getattr(customer, name)
        for name in CustomerDetail.model_fields
        if name not in ("documents", "account")
    }
    return CustomerDetail(
        **data,
        documents=documents,
        account=AccountResponse.model_validate(account) if account else None
    )


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[CustomerStatus] = None,
    search: Optional[str] = Query(None, min_length=1),
    _: User = Depends(permission_required("customer:view"))
):
    customers, total = await CustomerService.list_customers(page, page_size, status, search)
    return CustomerListResponse(
        items=[CustomerListItem.model_validate(c) for c in customers],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{customer_id}", response_model=CustomerDetail)
async def get_customer(
    customer_id: UUID,
    _: User = Depends(permission_required("customer:view"))
):
    customer = await CustomerService.get_customer(customer_id)
    account = await CustomerService.get_account(customer_id)
    return _detail(customer, account)


@router.patch("/{customer_id}", response_model=CustomerDetail)
async def review_customer(
    customer_id: UUID,
    payload: CustomerReviewUpdate,
    reviewer: User = Depends(permission_required("customer:review"))
):
    """Reviewer status / flag edit; VERIFIED is only reachable through OTP verification"""
    await CustomerService.review(customer_id, payload.status, reviewer, payload.flag_reason)
    customer = await CustomerService.get_customer(customer_id)
    account = await CustomerService.get_account(customer_id)
    return _detail(customer, account)


@router.get("/{customer_id}/audit", response_model=list[AuditLogResponse])
async def customer_audit_trail(
    customer_id: UUID,
    _: User = Depends(permission_required("customer:view"))
):
    await CustomerService.get_customer(customer_id)
    return await AuditService.history(customer_id)
