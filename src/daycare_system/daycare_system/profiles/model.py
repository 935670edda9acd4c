from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Profile:
    """Domain entity: a user profile linked 1:1 to an auth identity (`user_id`).

    Note: plain data object, no DB access here.
    """

    profile_id: str
    user_id: str
    email: str
    first_name: str
    last_name: str
    role: Role
    password_hash: str = ""
    phone: Optional[str] = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
