"""
Per-request session context handed to the ledger functions.

Built once per request by dependencies.get_session_context, so the ledger
never reaches for ambient state: everything it needs about the caller is
in this value.
"""

from dataclasses import dataclass

from unitedbank.models.account import Account
from unitedbank.models.profile import Profile
from unitedbank.models.user import User
from unitedbank.services.privilege_service import Privileges


@dataclass(frozen=True)
class SessionContext:
    user: User
    profile: Profile
    account: Account
    privileges: Privileges

    @property
    def email(self) -> str:
        """Where notifications for this caller go."""
        return self.profile.email or self.user.email
