"""Account domain exports"""

from .exceptions import AccountAlreadyExistsError, AccountError, AccountNotFoundError
from .models import Account, AccountCreateInput, AgentStatus, Party, Role
from .service import AccountDirectory, AccountService

__all__ = [
    "Account",
    "AccountAlreadyExistsError",
    "AccountCreateInput",
    "AccountDirectory",
    "AccountError",
    "AccountNotFoundError",
    "AccountService",
    "AgentStatus",
    "Party",
    "Role",
]
