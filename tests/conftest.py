import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("EMAIL_OTP_SECRET", "test-otp-secret")
os.environ.setdefault("OCR_ENABLED", "false")

import pytest
from typing import AsyncGenerator, Optional
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from app.main import app
from app.models import Role, User
from app.core.database import TORTOISE_MODULES
from app.core.exceptions import ExtractionFailure
from app.core.security.auth import create_access_token
from app.core.security.security import get_password_hash
from app.services.init_service import InitService
from app.services.kyc.account_service import AccountNumberAllocator
from app.services.kyc.ocr_service import DocumentEvidenceService
from app.services.kyc.onboarding_service import OnboardingService, get_onboarding_service
from app.services.kyc.otp_service import OtpConfig, OtpManager

FRONT_URL = "https://cdn.example.com/ids/front.jpg"
BACK_URL = "https://cdn.example.com/ids/back.jpg"
PROFILE_URL = "https://cdn.example.com/ids/profile.jpg"


class FakeExtractor:
    """OCR engine returning canned text per locator"""

    def __init__(self):
        self.texts: dict[str, str] = {}
        self.fail = False
        self.calls: list[str] = []

    async def extract(self, locator: str) -> str:
        self.calls.append(locator)
        if self.fail or locator not in self.texts:
            raise ExtractionFailure(locator, "engine unavailable")
        return self.texts[locator]


class FakeNotifier:
    """Records outgoing emails instead of sending them"""

    def __init__(self):
        self.otps: list[tuple[str, str]] = []
        self.accounts: list[tuple[str, str]] = []
        self.fail = False

    async def send_otp(self, email: str, code: str, name: Optional[str] = None) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.otps.append((email, code))

    async def send_account_ready(self, email: str, account_number: str, name: Optional[str] = None) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.accounts.append((email, account_number))

    def last_code(self, email: str) -> str:
        return [code for to, code in self.otps if to == email][-1]


@pytest.fixture(scope="function", autouse=True)
async def initialize_tests():
    """Fresh in-memory database for every test"""
    await Tortoise.init(db_url="sqlite://:memory:", modules=TORTOISE_MODULES)
    await Tortoise.generate_schemas()
    await InitService.init_roles_permissions()
    yield
    await Tortoise.close_connections()


async def _create_operator(email: str, role_name: Optional[str]) -> User:
    user = await User.create(
        email=email,
        name=email.split("@")[0],
        password_hash=get_password_hash("testpass123"),
        is_active=True
    )
    if role_name:
        role = await Role.get(name=role_name)
        await user.roles.add(role)
    return user


@pytest.fixture
async def operator() -> User:
    """Operator allowed to onboard customers"""
    return await _create_operator("agent@example.com", "onboarding_agent")


@pytest.fixture
async def reviewer() -> User:
    return await _create_operator("reviewer@example.com", "reviewer")


@pytest.fixture
async def outsider() -> User:
    """Active operator without any role"""
    return await _create_operator("outsider@example.com", None)


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def otp_manager() -> OtpManager:
    return OtpManager(OtpConfig(secret="test-otp-secret", ttl_minutes=10))


@pytest.fixture
def service(otp_manager, extractor, notifier) -> OnboardingService:
    return OnboardingService(
        otp_manager=otp_manager,
        evidence=DocumentEvidenceService(extractor),
        notifier=notifier,
        allocator=AccountNumberAllocator(max_retries=50),
        max_attempts=5
    )


@pytest.fixture
def form() -> dict:
    """A complete, valid onboarding submission"""
    return {
        "first_name": "John",
        "middle_name": "",
        "last_name": "Doe",
        "email": "john.doe@example.com",
        "phone": "+254700000001",
        "national_id": "12345678",
        "profile_image_url": PROFILE_URL,
        "id_front_image_url": FRONT_URL,
        "id_back_image_url": BACK_URL,
        "nationality": "Kenyan",
        "address": "Kenyatta Avenue, Nairobi",
        "business_name": "Doe Traders",
        "business_type": "Retail",
    }


@pytest.fixture
async def client(service) -> AsyncGenerator:
    """Async HTTP client wired to the test onboarding service"""
    app.dependency_overrides[get_onboarding_service] = lambda: service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header factory for an operator"""

    def _headers(user: User) -> dict:
        token = create_access_token(user_id=str(user.id), email=user.email)["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _headers
