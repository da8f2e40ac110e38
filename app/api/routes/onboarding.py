from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, status

from app.api.dependencies import get_current_user
from app.models.user import User
from app.schemas.customer import CustomerSummary, OnboardingResponse
from app.schemas.otp import ResendOtpRequest, ResendOtpResponse, VerifyOtpRequest, VerifyOtpResponse
from app.services.kyc.onboarding_service import OnboardingService, get_onboarding_service

router = APIRouter()


@router.post("", response_model=OnboardingResponse, status_code=status.HTTP_201_CREATED)
async def submit_onboarding(
    form_data: dict[str, Any] = Body(...),
    operator: User = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service)
):
    """
    Create a pending customer with its documents and email a verification code.

    Validation, OCR mismatch and uniqueness errors are reported before anything
    is written. A failed email does not undo the customer; use resend-otp.
    """
    result = await service.submit(form_data, operator.id)
    customer = result.customer
    message = "Customer onboarded successfully."
    if not result.otp_delivered:
        message += " The verification email could not be sent; request a new code."

    return OnboardingResponse(
        message=message,
        customer_id=customer.id,
        status=customer.status,
        otp_delivered=result.otp_delivered,
        customer=CustomerSummary.model_validate(customer)
    )


@router.post("/resend-otp", response_model=ResendOtpResponse)
async def resend_otp(
    payload: ResendOtpRequest,
    service: OnboardingService = Depends(get_onboarding_service)
):
    """Issue a fresh code and reset the attempt counter"""
    issued = await service.resend_otp(payload.customer_id)
    message = (
        "A new verification code has been sent to your email."
        if issued.delivered
        else "A new verification code was issued but the email could not be sent. Please try again."
    )
    return ResendOtpResponse(message=message, expires_at=issued.expires_at, otp_delivered=issued.delivered)


@router.post("/verify-otp", response_model=VerifyOtpResponse)
async def verify_otp(
    payload: VerifyOtpRequest,
    background_tasks: BackgroundTasks,
    service: OnboardingService = Depends(get_onboarding_service)
):
    """Check the emailed code; on success the customer is VERIFIED and an account is opened"""
    result = await service.verify_otp(payload.customer_id, payload.otp, background_tasks=background_tasks)
    return VerifyOtpResponse(
        message="Email verification successful. Account status is now VERIFIED.",
        status=result.customer.status,
        account_number=result.account.account_number
    )
