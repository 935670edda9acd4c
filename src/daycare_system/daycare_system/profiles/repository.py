from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Profile


class ProfileRepository(Protocol):
    """Repository interface for Profile.

    Note: services depend on this interface, never on a concrete database.
    """

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Profile]:
        raise NotImplementedError

    def list_by_role(self, role: Role, *, active_only: bool = True) -> Sequence[Profile]:
        raise NotImplementedError

    def create_profile(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        role: Role,
        password_hash: str,
        phone: Optional[str] = None,
    ) -> str:
        raise NotImplementedError

    def set_active(self, profile_id: str, *, is_active: bool) -> bool:
        raise NotImplementedError
