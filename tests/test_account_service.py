import pytest
from tortoise.exceptions import IntegrityError

from app.core.exceptions import AllocationExhaustedError
from app.enums.customer_status import CustomerStatus
from app.enums.document_type import DocumentType
from app.models import Account, Customer, CustomerDocument, User
from app.services.kyc.account_service import AccountNumberAllocator


async def _customer(operator: User, suffix: str) -> Customer:
    docs = [
        await CustomerDocument.create(type=doc_type, url=f"https://cdn.example.com/{suffix}/{doc_type.value}.jpg")
        for doc_type in (DocumentType.PROFILE_PHOTO, DocumentType.ID_FRONT, DocumentType.ID_BACK)
    ]
    return await Customer.create(
        first_name="Test",
        last_name=f"Customer{suffix}",
        email=f"customer{suffix}@example.com",
        phone="+254700000000",
        national_id=f"9000{suffix}",
        nationality="Kenyan",
        profile_image=docs[0],
        id_front_image=docs[1],
        id_back_image=docs[2],
        created_by=operator
    )


def test_generated_numbers_are_nine_digits():
    for _ in range(200):
        number = AccountNumberAllocator.generate()
        assert len(number) == 9
        assert 100000000 <= int(number) <= 999999999


@pytest.mark.asyncio
async def test_thousand_allocations_are_distinct():
    allocator = AccountNumberAllocator(max_retries=1000)
    issued: set[str] = set()

    async def is_taken(number: str) -> bool:
        return number in issued

    for _ in range(1000):
        issued.add(await allocator.allocate(is_taken))

    assert len(issued) == 1000
    assert all(len(n) == 9 and n[0] != "0" for n in issued)


@pytest.mark.asyncio
async def test_allocate_retries_on_collision(monkeypatch):
    allocator = AccountNumberAllocator(max_retries=5)
    candidates = iter(["111111111", "111111111", "222222222"])
    monkeypatch.setattr(AccountNumberAllocator, "generate", staticmethod(lambda: next(candidates)))

    async def is_taken(number: str) -> bool:
        return number == "111111111"

    assert await allocator.allocate(is_taken) == "222222222"


@pytest.mark.asyncio
async def test_allocate_gives_up_after_max_retries():
    allocator = AccountNumberAllocator(max_retries=3)
    calls = []

    async def is_taken(number: str) -> bool:
        calls.append(number)
        return True

    with pytest.raises(AllocationExhaustedError):
        await allocator.allocate(is_taken)
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_create_account_skips_numbers_already_in_store(operator, monkeypatch):
    first = await _customer(operator, "1")
    second = await _customer(operator, "2")
    await Account.create(account_number="333333333", customer=first)

    candidates = iter(["333333333", "444444444"])
    monkeypatch.setattr(AccountNumberAllocator, "generate", staticmethod(lambda: next(candidates)))

    account = await AccountNumberAllocator(max_retries=5).create_account(second)

    assert account.account_number == "444444444"
    assert await Account.filter(customer_id=second.id).count() == 1


@pytest.mark.asyncio
async def test_create_account_refuses_second_account(operator):
    customer = await _customer(operator, "3")
    allocator = AccountNumberAllocator(max_retries=5)
    await allocator.create_account(customer)

    with pytest.raises(IntegrityError):
        await allocator.create_account(customer)
    assert await Account.filter(customer_id=customer.id).count() == 1


@pytest.mark.asyncio
async def test_verification_retries_number_taken_concurrently(service, operator, form, notifier, monkeypatch):
    customer = (await service.submit(form, operator.id)).customer
    other = await _customer(operator, "4")
    await Account.create(account_number="333333333", customer=other)

    # the existence check misses the row, so only the unique index catches it
    async def never_taken(number, connection=None):
        return False

    candidates = iter(["333333333", "444444444"])
    monkeypatch.setattr(AccountNumberAllocator, "is_taken", staticmethod(never_taken))
    monkeypatch.setattr(AccountNumberAllocator, "generate", staticmethod(lambda: next(candidates)))

    result = await service.verify_otp(customer.id, notifier.last_code(form["email"]))

    assert result.account.account_number == "444444444"
    stored = await Customer.get(id=customer.id)
    assert stored.status == CustomerStatus.VERIFIED
    assert await Account.filter(customer_id=customer.id).count() == 1
    assert await Account.filter(account_number="333333333").count() == 1
