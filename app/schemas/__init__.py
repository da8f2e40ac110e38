from .customer import (OnboardingRequest, OnboardingResponse, CustomerSummary, CustomerListItem,
                       CustomerListResponse, CustomerDetail, CustomerReviewUpdate,
                       DocumentResponse, AccountResponse, AuditLogResponse)
from .otp import ResendOtpRequest, ResendOtpResponse, VerifyOtpRequest, VerifyOtpResponse
from .user import UserResponse, TokenResponse
