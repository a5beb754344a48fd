"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all runs
  2. Other modules can import from unitedbank.models directly
"""

from unitedbank.models.user import User, UserType  # noqa: F401
from unitedbank.models.profile import Profile  # noqa: F401
from unitedbank.models.account import Account  # noqa: F401
from unitedbank.models.transaction import Transaction  # noqa: F401
from unitedbank.models.privileged_user import PrivilegedUser  # noqa: F401
from unitedbank.models.reversal_request import ReversalRequest  # noqa: F401
from unitedbank.models.admin_security import (  # noqa: F401
    Admin2FA,
    AdminAuditLog,
    AdminIPWhitelistEntry,
)
