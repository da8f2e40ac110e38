from .user import User
from .role import Role, Permission
from .document import CustomerDocument
from .customer import Customer
from .account import Account
from .audit_log import CustomerAuditLog
