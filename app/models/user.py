import uuid
from tortoise import fields, models
from typing import Optional

from app.core.security.security import verify_password


class User(models.Model):
    """Back-office operator who onboards and reviews customers"""
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    email = fields.CharField(max_length=255, unique=True)
    name = fields.CharField(max_length=255, null=True)
    password_hash = fields.CharField(max_length=255)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)
    roles = fields.ManyToManyField("models.Role", related_name="users")

    class Meta:
        table = "users"

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional['User']:
        user = await cls.get_or_none(email=email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    async def has_role(self, role_name: str) -> bool:
        roles = await self.roles.all()
        return any(role.name == role_name for role in roles)

    async def has_permission(self, permission_name: str) -> bool:
        return await self.roles.filter(permissions__name=permission_name).exists()
