from __future__ import annotations

from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def age_in_months(birth_date: date, today: date) -> int:
    return (today.year - birth_date.year) * 12 + (today.month - birth_date.month)


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("negative numbers are not supported")
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))
