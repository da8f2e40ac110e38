from .onboarding import router as onboarding_router
from .customers import router as customers_router
from .user import router as user_router
