import uuid

import pytest

from app.core.exceptions import InvalidStatusTransitionError, NotFoundError, OnboardingValidationError
from app.enums.audit_action import AuditAction
from app.enums.customer_status import CustomerStatus, can_transition
from app.models import Customer, CustomerAuditLog
from app.services.kyc.customer_service import CustomerService


@pytest.fixture
async def customer(service, operator, form) -> Customer:
    result = await service.submit(form, operator.id)
    return result.customer


def test_transition_table():
    assert can_transition(CustomerStatus.PENDING, CustomerStatus.VERIFIED)
    assert not can_transition(CustomerStatus.PENDING, CustomerStatus.VERIFIED, by_review=True)
    assert can_transition(CustomerStatus.FLAGGED, CustomerStatus.PENDING, by_review=True)
    assert not can_transition(CustomerStatus.VERIFIED, CustomerStatus.PENDING)
    assert not can_transition(CustomerStatus.REJECTED, CustomerStatus.PENDING, by_review=True)


@pytest.mark.asyncio
async def test_flag_requires_reason(customer, reviewer):
    with pytest.raises(OnboardingValidationError):
        await CustomerService.review(customer.id, CustomerStatus.FLAGGED, reviewer, "  ")

    stored = await Customer.get(id=customer.id)
    assert stored.status == CustomerStatus.PENDING


@pytest.mark.asyncio
async def test_flag_then_unflag(customer, reviewer):
    flagged = await CustomerService.review(customer.id, CustomerStatus.FLAGGED, reviewer, "Blurry ID photo")
    assert flagged.status == CustomerStatus.FLAGGED
    assert flagged.flag_reason == "Blurry ID photo"

    back = await CustomerService.review(customer.id, CustomerStatus.PENDING, reviewer)
    assert back.status == CustomerStatus.PENDING
    assert back.flag_reason is None

    changes = await CustomerAuditLog.filter(customer_id=customer.id, action=AuditAction.STATUS_CHANGE).order_by("id")
    assert [c.details["status"] for c in changes] == ["FLAGGED", "PENDING"]
    assert changes[0].details["reason"] == "Blurry ID photo"


@pytest.mark.asyncio
async def test_reviewer_cannot_verify(customer, reviewer):
    with pytest.raises(InvalidStatusTransitionError):
        await CustomerService.review(customer.id, CustomerStatus.VERIFIED, reviewer)


@pytest.mark.asyncio
async def test_rejected_is_final(customer, reviewer):
    await CustomerService.review(customer.id, CustomerStatus.REJECTED, reviewer)

    with pytest.raises(InvalidStatusTransitionError):
        await CustomerService.review(customer.id, CustomerStatus.PENDING, reviewer)


@pytest.mark.asyncio
async def test_verified_customer_cannot_be_rejected(service, customer, reviewer, notifier, form):
    await service.verify_otp(customer.id, notifier.last_code(form["email"]))

    with pytest.raises(InvalidStatusTransitionError):
        await CustomerService.review(customer.id, CustomerStatus.REJECTED, reviewer)


@pytest.mark.asyncio
async def test_review_unknown_customer(reviewer):
    with pytest.raises(NotFoundError):
        await CustomerService.review(uuid.uuid4(), CustomerStatus.REJECTED, reviewer)


@pytest.mark.asyncio
async def test_list_filters_and_search(service, operator, form, reviewer):
    first = (await service.submit(form, operator.id)).customer
    form.update(email="mary.wanjiru@example.com", national_id="22334455", first_name="Mary", last_name="Wanjiru")
    await service.submit(form, operator.id)
    await CustomerService.review(first.id, CustomerStatus.REJECTED, reviewer)

    customers, total = await CustomerService.list_customers()
    assert total == 2

    rejected, total = await CustomerService.list_customers(status=CustomerStatus.REJECTED)
    assert total == 1 and rejected[0].id == first.id

    found, total = await CustomerService.list_customers(search="wanjiru")
    assert total == 1 and found[0].first_name == "Mary"

    page, total = await CustomerService.list_customers(page=2, page_size=1)
    assert total == 2 and len(page) == 1
