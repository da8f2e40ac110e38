from tortoise import fields, models
from uuid import uuid4


class Permission(models.Model):
    """Capability such as ``customer:create`` granted through roles"""
    id = fields.UUIDField(pk=True, default=uuid4)
    name = fields.CharField(max_length=64, unique=True)
    description = fields.TextField(null=True)

    roles: fields.ManyToManyRelation["Role"]

    class Meta:
        table = "permissions"

    def __str__(self):
        return self.name


class Role(models.Model):
    """Operator role: admin, onboarding_agent or reviewer"""
    id = fields.UUIDField(pk=True, default=uuid4)
    name = fields.CharField(max_length=50, unique=True)
    description = fields.TextField(null=True)

    permissions: fields.ManyToManyRelation[Permission] = fields.ManyToManyField(
        "models.Permission", related_name="roles", through="role_permissions"
    )

    class Meta:
        table = "roles"

    def __str__(self):
        return self.name

    @classmethod
    async def sync(cls, name: str, permission_names: list[str]) -> "Role":
        """Create the role if needed and make its permissions exactly ``permission_names``"""
        role, _ = await cls.get_or_create(name=name)
        permissions = await Permission.filter(name__in=permission_names)
        await role.permissions.clear()
        await role.permissions.add(*permissions)
        return role
