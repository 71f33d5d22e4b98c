"""User identity collaborator used to authorise user-scoped graphs."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional, Protocol


@dataclass(frozen=True)
class User:
    id: int
    is_admin: bool = False
    has_added_account: bool = False
    is_first_report_sent: bool = False
    last_account_change: Optional[datetime] = None
    last_sum_job: Optional[datetime] = None

    def summaries_out_of_date(self) -> bool:
        """True until onboarding completes, or while an account change awaits the next summary job."""

        if not self.has_added_account or not self.is_first_report_sent:
            return True
        if self.last_account_change is None:
            return False
        return self.last_sum_job is None or self.last_account_change > self.last_sum_job


class UserDirectory(Protocol):
    def lookup_user(self, user_id: int) -> Optional[User]:
        ...

    def compute_user_hash(self, user: User) -> str:
        ...


class InMemoryUserDirectory:
    def __init__(self, users: Iterable[User] = (), secret: str = "") -> None:
        self._users: Dict[int, User] = {user.id: user for user in users}
        self.secret = secret

    def add(self, user: User) -> None:
        self._users[user.id] = user

    def lookup_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def compute_user_hash(self, user: User) -> str:
        return hashlib.sha256(f"{self.secret}:{user.id}".encode()).hexdigest()[:32]
