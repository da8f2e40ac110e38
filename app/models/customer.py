# app/models/customer.py
import uuid
from tortoise import fields, models
from app.enums.customer_status import CustomerStatus


class Customer(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)

    # Personal details
    first_name = fields.CharField(max_length=255)
    middle_name = fields.CharField(max_length=255, null=True)
    last_name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, unique=True)
    phone = fields.CharField(max_length=32)

    # Identity and background
    national_id = fields.CharField(max_length=64, unique=True)
    nationality = fields.CharField(max_length=128)
    address = fields.CharField(max_length=512, null=True)
    business_name = fields.CharField(max_length=255, null=True)
    business_type = fields.CharField(max_length=255, null=True)

    # Documents
    profile_image = fields.OneToOneField("models.CustomerDocument", related_name="profile_of")
    id_front_image = fields.OneToOneField("models.CustomerDocument", related_name="id_front_of")
    id_back_image = fields.OneToOneField("models.CustomerDocument", related_name="id_back_of")

    # What OCR read from the identity document
    ocr_extracted_name = fields.CharField(max_length=255, null=True)
    ocr_extracted_id = fields.CharField(max_length=64, null=True)

    # Email OTP state; the plain code is never stored
    email_otp_hash = fields.CharField(max_length=128, null=True)
    email_otp_expiry = fields.DatetimeField(null=True)
    email_otp_attempts = fields.IntField(default=0)
    email_verified = fields.BooleanField(default=False)

    status = fields.CharEnumField(CustomerStatus, default=CustomerStatus.PENDING)
    flag_reason = fields.TextField(null=True)

    created_by = fields.ForeignKeyField("models.User", related_name="customers")
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "customers"
        ordering = ["-created_at"]

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)

    def __str__(self):
        return f"Customer {self.id} - {self.full_name} ({self.status})"
