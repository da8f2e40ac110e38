import uuid
from decimal import Decimal
from tortoise import fields, models

from app.enums.account_type import AccountType


class Account(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    account_number = fields.CharField(max_length=9, unique=True)
    balance = fields.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    currency = fields.CharField(max_length=3, default="KES")
    account_type = fields.CharEnumField(AccountType, default=AccountType.CURRENT)
    customer = fields.OneToOneField("models.Customer", related_name="account")
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "accounts"

    def __str__(self):
        return f"Account {self.account_number} ({self.account_type})"
