"""
Customer onboarding pipeline.

submit      validate -> operator -> OCR cross-check -> atomic create -> OTP
resend_otp  fresh OTP for a pending customer
verify_otp  check code -> atomic PENDING->VERIFIED + account -> welcome email

Network I/O (OCR, SMTP) always happens outside the database transactions.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from loguru import logger
from pydantic import ValidationError
from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from app.core.config import settings
from app.core.exceptions import (
    AlreadyVerifiedError,
    AuthorizationError,
    ConflictError,
    CustomerNotPendingError,
    InternalError,
    MismatchError,
    NotFoundError,
    OnboardingValidationError,
    OtpExpiredError,
    OtpInvalidError,
    OtpMissingError,
    TooManyAttemptsError,
)
from app.enums.audit_action import AuditAction
from app.enums.customer_status import CustomerStatus, can_transition
from app.enums.document_type import DocumentType
from app.enums.otp_check import OtpCheck
from app.models import Account, Customer, CustomerDocument, User
from app.schemas.customer import OnboardingRequest
from app.services.communication.email_service import NotificationSender, get_notification_sender
from app.services.kyc.account_service import AccountNumberAllocator
from app.services.kyc.audit_service import AuditService
from app.services.kyc.ocr_service import (
    DocumentEvidenceService,
    OcrEvidence,
    OcrResult,
    OcrUnavailable,
    get_text_extractor,
)
from app.services.kyc.otp_service import OtpConfig, OtpIssue, OtpManager, to_iso

CREATE_PERMISSION = "customer:create"

_FAILED_OTP_ERRORS = {
    OtpCheck.EXPIRED: OtpExpiredError,
    OtpCheck.INVALID: OtpInvalidError,
    OtpCheck.MISSING: OtpMissingError,
}

_service: "OnboardingService | None" = None


@dataclass
class OnboardingResult:
    customer: Customer
    otp_delivered: bool


@dataclass
class OtpIssued:
    customer_id: Any
    expires_at: datetime
    delivered: bool


@dataclass
class VerificationResult:
    customer: Customer
    account: Account


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_uuid(value: Any) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _squash(value: str) -> str:
    return " ".join(value.split()).casefold()


class OnboardingService:
    def __init__(
        self,
        otp_manager: OtpManager,
        evidence: DocumentEvidenceService,
        notifier: NotificationSender,
        allocator: AccountNumberAllocator,
        max_attempts: int = 5
    ):
        self.otp = otp_manager
        self.evidence = evidence
        self.notifier = notifier
        self.allocator = allocator
        self.max_attempts = max_attempts

    # ===================== submit =====================

    async def submit(self, form_data: dict, operator_id: Any) -> OnboardingResult:
        request = self._validate(form_data)
        operator = await self._resolve_operator(operator_id)

        conflict = await self._find_conflict(request)
        if conflict:
            raise ConflictError(conflict)

        ocr = await self.evidence.collect(request.id_front_image_url, request.id_back_image_url)
        self._cross_check(request, ocr)

        customer = await self._create_records(request, operator, ocr)
        logger.info(f"Customer {customer.id} created by operator {operator.id}")

        try:
            issue = await self._issue_otp(customer, actor=operator)
        except InternalError:
            raise InternalError("Customer was created but the verification code could not be issued. Request a resend.")

        delivered = await self._deliver_otp(customer, issue.code)
        return OnboardingResult(customer=customer, otp_delivered=delivered)

    @staticmethod
    def _validate(form_data: Any) -> OnboardingRequest:
        try:
            return OnboardingRequest.model_validate(form_data)
        except ValidationError as e:
            fields: dict[str, list[str]] = {}
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "form"
                fields.setdefault(field, []).append(error["msg"])
            raise OnboardingValidationError(fields)

    @staticmethod
    async def _resolve_operator(operator_id: Any) -> User:
        pk = _parse_uuid(operator_id)
        if pk is None:
            raise AuthorizationError("No authenticated operator.")
        operator = await User.get_or_none(id=pk)
        if operator is None or not operator.is_active:
            raise AuthorizationError("Authenticated operator not found.")
        if not await operator.has_permission(CREATE_PERMISSION):
            logger.warning(f"Operator {operator.email} may not create customers")
            raise AuthorizationError("Operator is not allowed to create customers.")
        return operator

    @staticmethod
    async def _find_conflict(request: OnboardingRequest) -> Optional[str]:
        if await Customer.filter(email=request.email).exists():
            return "email"
        if await Customer.filter(national_id=request.national_id).exists():
            return "national_id"
        return None

    @staticmethod
    def _cross_check(request: OnboardingRequest, ocr: OcrResult) -> None:
        if isinstance(ocr, OcrUnavailable):
            logger.info(f"Skipping OCR cross-check: {ocr.reason}")
            return

        if ocr.candidate_id and ocr.candidate_id != request.national_id:
            raise MismatchError("national_id", request.national_id, ocr.candidate_id)

        if ocr.candidate_name:
            extracted = _squash(ocr.candidate_name)
            names = {
                _squash(" ".join(filter(None, [request.first_name, request.middle_name, request.last_name]))),
                _squash(f"{request.first_name} {request.last_name}"),
            }
            if not any(name in extracted or extracted in name for name in names):
                submitted = " ".join(filter(None, [request.first_name, request.middle_name, request.last_name]))
                raise MismatchError("name", submitted, ocr.candidate_name)

    async def _create_records(self, request: OnboardingRequest, operator: User, ocr: OcrResult) -> Customer:
        candidate_id = candidate_name = None
        if isinstance(ocr, OcrEvidence):
            candidate_id, candidate_name = ocr.candidate_id, ocr.candidate_name
        try:
            async with in_transaction() as conn:
                profile = await CustomerDocument.create(
                    type=DocumentType.PROFILE_PHOTO, url=request.profile_image_url, using_db=conn
                )
                front = await CustomerDocument.create(
                    type=DocumentType.ID_FRONT, url=request.id_front_image_url, using_db=conn
                )
                back = await CustomerDocument.create(
                    type=DocumentType.ID_BACK, url=request.id_back_image_url, using_db=conn
                )
                customer = await Customer.create(
                    first_name=request.first_name,
                    middle_name=request.middle_name,
                    last_name=request.last_name,
                    email=request.email,
                    phone=request.phone,
                    national_id=request.national_id,
                    nationality=request.nationality,
                    address=request.address,
                    business_name=request.business_name,
                    business_type=request.business_type,
                    profile_image=profile,
                    id_front_image=front,
                    id_back_image=back,
                    ocr_extracted_name=candidate_name,
                    ocr_extracted_id=candidate_id,
                    status=CustomerStatus.PENDING,
                    created_by=operator,
                    using_db=conn
                )
                await AuditService.log_action(
                    customer.id,
                    AuditAction.CREATED,
                    {"ocr_extracted_id": candidate_id, "ocr_extracted_name": candidate_name},
                    actor=operator,
                    connection=conn
                )
            return customer
        except IntegrityError as e:
            logger.warning(f"Uniqueness violation while creating customer: {e}")
            field = await self._find_conflict(request)
            if field:
                raise ConflictError(field)
            raise ConflictError(
                "email_or_national_id",
                "A customer with this National ID or email already exists."
            )
        except BaseORMException:
            logger.exception("Customer creation transaction failed")
            raise InternalError("Could not create the customer record.")

    # ===================== OTP issue / resend =====================

    async def _issue_otp(self, customer: Customer, actor: Optional[User] = None) -> OtpIssue:
        issue = self.otp.issue()
        try:
            async with in_transaction() as conn:
                updated = await Customer.filter(id=customer.id, status=CustomerStatus.PENDING).using_db(conn).update(
                    email_otp_hash=issue.hash,
                    email_otp_expiry=issue.expires_at,
                    email_otp_attempts=0,
                    updated_at=_utcnow()
                )
                if updated:
                    await AuditService.log_action(
                        customer.id,
                        AuditAction.OTP_ISSUED,
                        {"expires_at": to_iso(issue.expires_at)},
                        actor=actor,
                        connection=conn
                    )
        except BaseORMException:
            logger.exception(f"Could not store OTP for customer {customer.id}")
            raise InternalError("Could not issue a verification code.")

        if not updated:
            # status changed since the customer was loaded
            current = await self._get_customer(customer.id)
            self._ensure_pending(current)

        customer.email_otp_hash = issue.hash
        customer.email_otp_expiry = issue.expires_at
        customer.email_otp_attempts = 0
        return issue

    async def _deliver_otp(self, customer: Customer, code: str) -> bool:
        try:
            await self.notifier.send_otp(customer.email, code, customer.first_name)
            return True
        except Exception as e:
            logger.error(f"OTP delivery to {customer.email} failed for customer {customer.id}: {e}")
            return False

    async def resend_otp(self, customer_id: Any) -> OtpIssued:
        customer = await self._get_customer(customer_id)
        self._ensure_pending(customer)

        issue = await self._issue_otp(customer)
        delivered = await self._deliver_otp(customer, issue.code)
        logger.info(f"Re-issued OTP for customer {customer.id} (delivered={delivered})")
        return OtpIssued(customer_id=customer.id, expires_at=issue.expires_at, delivered=delivered)

    # ===================== verify =====================

    async def verify_otp(
        self,
        customer_id: Any,
        code: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> VerificationResult:
        """
        Check ``code`` for a pending customer and activate them.

        The status check, the code check and either the activation or the
        attempt increment happen under one row lock in one transaction.
        """
        account: Optional[Account] = None
        attempts = 0
        try:
            async with in_transaction() as conn:
                customer = await self._get_customer(customer_id, connection=conn, for_update=True)
                self._ensure_pending(customer)
                if customer.email_otp_attempts >= self.max_attempts:
                    logger.warning(f"Customer {customer.id} is locked out after {customer.email_otp_attempts} attempts")
                    raise TooManyAttemptsError(customer.email_otp_attempts)

                outcome = self.otp.verify(code, customer.email_otp_hash, customer.email_otp_expiry)
                if outcome is OtpCheck.VALID:
                    account = await self._activate(customer, conn)
                else:
                    attempts = await self._record_failure(customer, outcome, conn)
        except BaseORMException:
            logger.exception(f"Verification transaction failed for customer {customer_id}")
            raise InternalError("Could not complete verification.")

        if account is None:
            logger.info(f"OTP check for customer {customer_id} failed: {outcome.value} (attempts={attempts})")
            raise _FAILED_OTP_ERRORS[outcome](attempts)

        if background_tasks is not None:
            background_tasks.add_task(self.notify_account_ready, customer, account)
        else:
            await self.notify_account_ready(customer, account)

        return VerificationResult(customer=customer, account=account)

    async def _activate(self, customer: Customer, conn: BaseDBAsyncClient) -> Account:
        if not can_transition(customer.status, CustomerStatus.VERIFIED):
            raise CustomerNotPendingError(customer.id, customer.status.value)

        claimed = await Customer.filter(id=customer.id, status=CustomerStatus.PENDING).using_db(conn).update(
            status=CustomerStatus.VERIFIED,
            email_verified=True,
            email_otp_hash=None,
            email_otp_expiry=None,
            email_otp_attempts=0,
            updated_at=_utcnow()
        )
        if not claimed:
            raise AlreadyVerifiedError(customer.id)

        account = await self.allocator.create_account(customer, conn)
        await AuditService.log_action(
            customer.id,
            AuditAction.VERIFIED,
            {"from": CustomerStatus.PENDING.value, "account_number": account.account_number},
            connection=conn
        )

        customer.status = CustomerStatus.VERIFIED
        customer.email_verified = True
        customer.email_otp_hash = None
        customer.email_otp_expiry = None
        customer.email_otp_attempts = 0
        logger.info(f"Customer {customer.id} verified, account {account.account_number} opened")
        return account

    @staticmethod
    async def _record_failure(customer: Customer, outcome: OtpCheck, conn: BaseDBAsyncClient) -> int:
        await Customer.filter(id=customer.id).using_db(conn).update(
            email_otp_attempts=F("email_otp_attempts") + 1
        )
        await AuditService.log_action(customer.id, AuditAction.OTP_FAILED, {"reason": outcome.value}, connection=conn)
        customer.email_otp_attempts += 1
        return customer.email_otp_attempts

    async def notify_account_ready(self, customer: Customer, account: Account) -> None:
        try:
            await self.notifier.send_account_ready(customer.email, account.account_number, customer.first_name)
        except Exception as e:
            logger.error(f"Account-ready email to {customer.email} failed for customer {customer.id}: {e}")

    # ===================== helpers =====================

    @staticmethod
    async def _get_customer(
        customer_id: Any,
        connection: Optional[BaseDBAsyncClient] = None,
        for_update: bool = False
    ) -> Customer:
        pk = _parse_uuid(customer_id)
        if pk is None:
            raise NotFoundError("Customer", customer_id)
        query = Customer.filter(id=pk).using_db(connection)
        if for_update:
            query = query.select_for_update()
        customer = await query.first()
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    @staticmethod
    def _ensure_pending(customer: Customer) -> None:
        if customer.status == CustomerStatus.VERIFIED:
            raise AlreadyVerifiedError(customer.id)
        if customer.status != CustomerStatus.PENDING:
            raise CustomerNotPendingError(customer.id, customer.status.value)


def build_onboarding_service() -> OnboardingService:
    return OnboardingService(
        otp_manager=OtpManager(OtpConfig.from_settings(settings)),
        evidence=DocumentEvidenceService(get_text_extractor()),
        notifier=get_notification_sender(),
        allocator=AccountNumberAllocator(max_retries=settings.ACCOUNT_NUMBER_MAX_RETRIES),
        max_attempts=settings.OTP_MAX_ATTEMPTS,
    )


def get_onboarding_service() -> OnboardingService:
    """Lazy singleton, also used as a FastAPI dependency"""
    global _service
    if _service is None:
        _service = build_onboarding_service()
    return _service
