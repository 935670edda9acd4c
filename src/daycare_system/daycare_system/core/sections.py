"""Single lookup table for daycare sections.

Every screen, badge and assignment rule reads section labels and age bounds
from here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import Section


@dataclass(frozen=True)
class SectionInfo:
    code: Section
    label: str
    age_range: str
    age_min_months: Optional[int]
    age_max_months: Optional[int]
    educator_ratio: int

    @property
    def full_label(self) -> str:
        return f"{self.label} ({self.age_range})"


SECTIONS: dict[Section, SectionInfo] = {
    Section.CRECHE_ETOILE: SectionInfo(Section.CRECHE_ETOILE, "Crèche Étoile", "3-18 mois", 3, 18, 5),
    Section.CRECHE_NUAGE: SectionInfo(Section.CRECHE_NUAGE, "Crèche Nuage", "18-24 mois", 18, 24, 8),
    Section.CRECHE_SOLEIL: SectionInfo(Section.CRECHE_SOLEIL, "Crèche Soleil TPS", "24-36 mois", 24, 36, 8),
    Section.GARDERIE: SectionInfo(Section.GARDERIE, "Garderie", "3-8 ans", 36, 96, 10),
    Section.MATERNELLE_PS1: SectionInfo(Section.MATERNELLE_PS1, "Maternelle Petite Section 1", "3-4 ans", 36, 48, 6),
    Section.MATERNELLE_PS2: SectionInfo(Section.MATERNELLE_PS2, "Maternelle Petite Section 2", "4-5 ans", 48, 60, 8),
    Section.MATERNELLE_MS: SectionInfo(Section.MATERNELLE_MS, "Maternelle Moyenne Section", "5-6 ans", 60, 72, 10),
    Section.MATERNELLE_GS: SectionInfo(Section.MATERNELLE_GS, "Maternelle Grande Section", "6-7 ans", 72, 84, 10),
}

CRECHE_SECTIONS = frozenset({Section.CRECHE_ETOILE, Section.CRECHE_NUAGE, Section.CRECHE_SOLEIL})


def parse_section(value: str | Section | None) -> Optional[Section]:
    if value is None or value == "":
        return None
    if isinstance(value, Section):
        return value
    try:
        return Section(value)
    except ValueError:
        return None


def section_info(value: str | Section | None) -> Optional[SectionInfo]:
    section = parse_section(value)
    return SECTIONS.get(section) if section else None


def section_label(value: str | Section | None, *, with_ages: bool = False) -> str:
    """Label for display; unknown codes are shown as-is."""
    info = section_info(value)
    if info is None:
        if isinstance(value, Section):
            return value.value
        return value or "Non définie"
    return info.full_label if with_ages else info.label


def accepts_age(info: SectionInfo, age_months: int) -> bool:
    if info.age_min_months is not None and age_months < info.age_min_months:
        return False
    if info.age_max_months is not None and age_months > info.age_max_months:
        return False
    return True
