from tortoise import fields, models
from app.enums.audit_action import AuditAction


class CustomerAuditLog(models.Model):
    """Append-only trail of what happened to a customer and who did it"""
    id = fields.IntField(pk=True)
    customer = fields.ForeignKeyField("models.Customer", related_name="audit_logs")
    action = fields.CharEnumField(AuditAction, max_length=32)
    details = fields.JSONField(default=dict)
    # null for customer-initiated actions such as OTP verification
    actor = fields.ForeignKeyField("models.User", related_name="audit_logs", null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "customer_audit_logs"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.action} on customer {self.customer_id}"
