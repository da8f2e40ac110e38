from uuid import UUID
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.enums.customer_status import CustomerStatus


class ResendOtpRequest(BaseModel):
    customer_id: UUID


class ResendOtpResponse(BaseModel):
    message: str
    expires_at: datetime
    otp_delivered: bool


class VerifyOtpRequest(BaseModel):
    """Schema for verifying the emailed code"""
    customer_id: UUID
    otp: str = Field(..., min_length=6, max_length=6, description="6-digit verification code")


class VerifyOtpResponse(BaseModel):
    message: str
    status: CustomerStatus
    account_number: Optional[str] = None
