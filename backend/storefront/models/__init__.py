from .auth import User
from .tenancy import Store
from .audit import AuditEvent

__all__ = [
    'User',
    'Store',
    'AuditEvent',
]
