# app/services/kyc/audit_service.py
from typing import Optional
from tortoise.backends.base.client import BaseDBAsyncClient

from app.models import CustomerAuditLog, User
from app.enums.audit_action import AuditAction

class AuditService:
    @staticmethod
    async def log_action(
        customer_id,
        action: AuditAction,
        details: dict,
        actor: Optional[User] = None,
        connection: Optional[BaseDBAsyncClient] = None
    ) -> CustomerAuditLog:
        return await CustomerAuditLog.create(
            customer_id=customer_id,
            action=action,
            details=details,
            actor=actor,
            using_db=connection
        )

    @staticmethod
    async def log_status_change(
        customer_id,
        previous: str,
        status: str,
        actor: Optional[User] = None,
        reason: Optional[str] = None,
        connection: Optional[BaseDBAsyncClient] = None
    ) -> CustomerAuditLog:
        return await AuditService.log_action(
            customer_id,
            AuditAction.STATUS_CHANGE,
            {"from": previous, "status": status, "reason": reason},
            actor=actor,
            connection=connection
        )

    @staticmethod
    async def history(customer_id) -> list[CustomerAuditLog]:
        return await CustomerAuditLog.filter(customer_id=customer_id).order_by("created_at", "id")
