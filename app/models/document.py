import uuid
from tortoise import fields, models
from app.enums.document_type import DocumentType


class CustomerDocument(models.Model):
    """Locator of an uploaded image; written once, never updated"""
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    type = fields.CharEnumField(DocumentType)
    url = fields.CharField(max_length=1024)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "customer_documents"
