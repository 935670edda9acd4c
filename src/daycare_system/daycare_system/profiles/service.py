from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.app_logger import get_logger
from ..common.validators import optional_text, require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import Profile
from .repository import ProfileRepository

log = get_logger("profiles")


@dataclass(frozen=True)
class SessionProfile:
    """What we store into the Flask session after login."""

    profile_id: str
    full_name: str
    role: Role


class AuthService:
    """Use case: authenticate a profile (login)."""

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    def authenticate(self, email: str, password: str) -> SessionProfile:
        profile = self._profiles.get_by_email((email or "").strip().lower())
        if not profile or not profile.is_active:
            raise AuthenticationError("Email ou mot de passe incorrect")

        try:
            ok = check_password_hash(profile.password_hash, password or "")
        except Exception:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Email ou mot de passe incorrect")

        log.info("login profile=%s role=%s", profile.profile_id, profile.role.value)
        return SessionProfile(profile_id=profile.profile_id, full_name=profile.full_name, role=profile.role)


class ProfileService:
    """Use case: manage profiles (admin)."""

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    def create_profile(
        self,
        *,
        current_role: Role,
        email: str,
        first_name: str,
        last_name: str,
        role: Role,
        password: str,
        phone: str = "",
    ) -> str:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Action réservée à l'administration")

        email = require_non_empty(email, "Email").lower()
        if "@" not in email:
            raise ValidationError("Email invalide")
        first_name = require_non_empty(first_name, "Prénom")
        last_name = require_non_empty(last_name, "Nom")
        require_min_length(password, "Mot de passe", 6)

        if self._profiles.get_by_email(email):
            raise ValidationError("Un compte existe déjà avec cet email")

        return self._profiles.create_profile(
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            password_hash=generate_password_hash(password),
            phone=optional_text(phone),
        )

    def get(self, profile_id: str) -> Profile:
        profile = self._profiles.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Profil introuvable")
        return profile

    def list_by_role(self, role: Role) -> Sequence[Profile]:
        return self._profiles.list_by_role(role)

    def deactivate(self, *, current_role: Role, profile_id: str, current_profile_id: Optional[str] = None) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Action réservée à l'administration")
        if current_profile_id and current_profile_id == profile_id:
            raise ValidationError("Impossible de désactiver votre propre compte")
        if not self._profiles.set_active(profile_id, is_active=False):
            raise NotFoundError("Profil introuvable")
