# app/schemas/customer.py
from uuid import UUID
from decimal import Decimal
from typing import Optional
from datetime import datetime
from pydantic import (BaseModel, ConfigDict, EmailStr, Field, HttpUrl, TypeAdapter,
                      ValidationError, field_validator)

from app.enums.customer_status import CustomerStatus
from app.enums.document_type import DocumentType
from app.enums.account_type import AccountType
from app.enums.audit_action import AuditAction

_http_url = TypeAdapter(HttpUrl)


class OnboardingRequest(BaseModel):
    """Form submitted by an operator for a new customer"""
    model_config = ConfigDict(str_strip_whitespace=True)

    # Personal details
    first_name: str = Field(..., min_length=1)
    middle_name: Optional[str] = None
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=10)

    # Identity documents
    national_id: str = Field(..., min_length=6)
    profile_image_url: str
    id_front_image_url: str
    id_back_image_url: str

    # Background
    nationality: str = Field(..., min_length=1)
    address: Optional[str] = None
    business_name: Optional[str] = None
    business_type: Optional[str] = None

    @field_validator("profile_image_url", "id_front_image_url", "id_back_image_url")
    @classmethod
    def must_be_http_url(cls, value: str) -> str:
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("must be a valid http(s) URL")
        return value

    @field_validator("middle_name", "address", "business_name", "business_type")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class CustomerSummary(BaseModel):
    id: UUID
    first_name: str
    email: str
    status: CustomerStatus
    model_config = ConfigDict(from_attributes=True)


class OnboardingResponse(BaseModel):
    message: str
    customer_id: UUID
    status: CustomerStatus
    otp_delivered: bool
    customer: CustomerSummary


class DocumentResponse(BaseModel):
    id: UUID
    type: DocumentType
    url: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AccountResponse(BaseModel):
    account_number: str
    balance: Decimal
    currency: str
    account_type: AccountType
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CustomerListItem(BaseModel):
    id: UUID
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    email: str
    phone: str
    national_id: str
    status: CustomerStatus
    email_verified: bool
    flag_reason: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CustomerListResponse(BaseModel):
    items: list[CustomerListItem]
    total: int
    page: int
    page_size: int


class CustomerDetail(CustomerListItem):
    nationality: str
    address: Optional[str] = None
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    ocr_extracted_name: Optional[str] = None
    ocr_extracted_id: Optional[str] = None
    email_otp_attempts: int
    updated_at: datetime
    documents: list[DocumentResponse] = []
    account: Optional[AccountResponse] = None


class CustomerReviewUpdate(BaseModel):
    status: CustomerStatus
    flag_reason: Optional[str] = Field(None, max_length=2000)


class AuditLogResponse(BaseModel):
    id: int
    action: AuditAction
    details: dict
    actor_id: Optional[UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
