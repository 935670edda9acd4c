from dataclasses import replace

import pytest

from src.daycare_system.daycare_system.core.enums import Role
from src.daycare_system.daycare_system.core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from src.daycare_system.daycare_system.profiles.service import AuthService, ProfileService
from tests.fakes import FakeProfileRepository


def test_authenticate_returns_session_profile():
    repo = FakeProfileRepository()
    repo.add("admin", Role.ADMIN, email="direction@creche.test", password="bonjour1", first_name="Awa", last_name="Diop")

    s_profile = AuthService(repo).authenticate("  Direction@Creche.test ", "bonjour1")

    assert s_profile.profile_id == "admin"
    assert s_profile.role == Role.ADMIN
    assert s_profile.full_name == "Awa Diop"


def test_authenticate_rejects_wrong_password_and_inactive_profiles():
    repo = FakeProfileRepository()
    repo.add("edu", Role.EDUCATOR, password="bonjour1")
    repo.add("gone", Role.EDUCATOR, password="bonjour1", is_active=False)
    svc = AuthService(repo)

    with pytest.raises(AuthenticationError):
        svc.authenticate("edu@creche.test", "nope")
    with pytest.raises(AuthenticationError):
        svc.authenticate("gone@creche.test", "bonjour1")
    with pytest.raises(AuthenticationError):
        svc.authenticate("unknown@creche.test", "bonjour1")


def test_authenticate_tolerates_placeholder_hash():
    repo = FakeProfileRepository()
    profile = repo.add("seed", Role.ADMIN)
    repo.rows["seed"] = replace(profile, password_hash="CHANGE_ME")

    with pytest.raises(AuthenticationError):
        AuthService(repo).authenticate("seed@creche.test", "CHANGE_ME")


def test_only_admin_creates_profiles():
    svc = ProfileService(FakeProfileRepository())

    with pytest.raises(AuthorizationError):
        svc.create_profile(
            current_role=Role.SECRETARY,
            email="p@creche.test",
            first_name="A",
            last_name="B",
            role=Role.PARENT,
            password="secret1",
        )


def test_create_profile_hashes_password_and_refuses_duplicates():
    repo = FakeProfileRepository()
    svc = ProfileService(repo)

    profile_id = svc.create_profile(
        current_role=Role.ADMIN,
        email="Parent@Creche.test",
        first_name="Fatou",
        last_name="Sow",
        role=Role.PARENT,
        password="secret1",
    )

    created = repo.get_by_id(profile_id)
    assert created.email == "parent@creche.test"
    assert created.password_hash != "secret1"
    assert AuthService(repo).authenticate("parent@creche.test", "secret1").profile_id == profile_id

    with pytest.raises(ValidationError):
        svc.create_profile(
            current_role=Role.ADMIN,
            email="parent@creche.test",
            first_name="X",
            last_name="Y",
            role=Role.PARENT,
            password="secret1",
        )


def test_create_profile_validates_password_length():
    svc = ProfileService(FakeProfileRepository())

    with pytest.raises(ValidationError):
        svc.create_profile(
            current_role=Role.ADMIN,
            email="p@creche.test",
            first_name="A",
            last_name="B",
            role=Role.PARENT,
            password="123",
        )


def test_admin_cannot_deactivate_self():
    repo = FakeProfileRepository()
    repo.add("admin", Role.ADMIN)
    repo.add("edu", Role.EDUCATOR)
    svc = ProfileService(repo)

    with pytest.raises(ValidationError):
        svc.deactivate(current_role=Role.ADMIN, profile_id="admin", current_profile_id="admin")

    svc.deactivate(current_role=Role.ADMIN, profile_id="edu", current_profile_id="admin")
    assert repo.get_by_id("edu").is_active is False
    assert svc.list_by_role(Role.EDUCATOR) == []
