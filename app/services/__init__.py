from .kyc.onboarding_service import OnboardingService, get_onboarding_service
from .kyc.customer_service import CustomerService
from .init_service import InitService
