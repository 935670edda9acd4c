from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Profile role; decides which screens and report actions are allowed."""

    ADMIN = "admin"
    SECRETARY = "secretary"
    EDUCATOR = "educator"
    PARENT = "parent"


# Roles allowed to decide reports (and to self-validate on submit).
STAFF_ROLES = frozenset({Role.ADMIN, Role.SECRETARY})

# Roles that may write reports and record attendance.
CARE_ROLES = frozenset({Role.ADMIN, Role.SECRETARY, Role.EDUCATOR})


class ReportStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class ReportKind(str, Enum):
    """Daily reports and bi-monthly (stored as weekly) reports."""

    DAILY = "daily"
    WEEKLY = "weekly"


class ScanType(str, Enum):
    ARRIVAL = "arrival"
    DEPARTURE = "departure"


class ChildStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    WAITING_LIST = "waiting_list"


class Section(str, Enum):
    CRECHE_ETOILE = "creche_etoile"
    CRECHE_NUAGE = "creche_nuage"
    CRECHE_SOLEIL = "creche_soleil"
    GARDERIE = "garderie"
    MATERNELLE_PS1 = "maternelle_PS1"
    MATERNELLE_PS2 = "maternelle_PS2"
    MATERNELLE_MS = "maternelle_MS"
    MATERNELLE_GS = "maternelle_GS"


class HealthStatus(str, Enum):
    BIEN = "bien"
    SURVEILLER = "surveiller"
    MALADE = "malade"


class MealPortion(str, Enum):
    """How much of a meal slot was eaten."""

    BIEN_MANGE = "bien_mange"
    PEU_MANGE = "peu_mange"
    RIEN_MANGE = "rien_mange"


class OutboxStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
