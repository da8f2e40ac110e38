from loguru import logger

from app.models import User, Role, Permission
from app.core.security.security import get_password_hash
from app.core.config import settings

PERMISSIONS = [
    {"name": "customer:create", "description": "Onboard new customers"},
    {"name": "customer:view", "description": "View customer records"},
    {"name": "customer:review", "description": "Change customer status and flags"},
]

ROLES = {
    "admin": ["customer:create", "customer:view", "customer:review"],
    "onboarding_agent": ["customer:create", "customer:view"],
    "reviewer": ["customer:view", "customer:review"],
}


class InitService:
    @staticmethod
    async def create_default_user():
        email = settings.EMAIL

        # Skip when the operator already exists
        if await User.exists(email=email):
            return None

        user = await User.create(
            email=email,
            name="Administrator",
            password_hash=get_password_hash(settings.PASSWORD),
        )
        admin_role = await Role.get_or_none(name="admin")
        if admin_role:
            await user.roles.add(admin_role)
        logger.info(f"Default operator {email} created")
        return user

    @staticmethod
    async def init_roles_permissions():
        for p in PERMISSIONS:
            await Permission.get_or_create(name=p["name"], defaults={"description": p["description"]})

        for role_name, perm_names in ROLES.items():
            await Role.sync(role_name, perm_names)
        logger.info(f"Synced {len(ROLES)} operator roles")
