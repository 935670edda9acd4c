"""Short human-readable badge codes (`code_qr_id`)."""
from __future__ import annotations

import random
import secrets
from typing import Callable, Optional

from ..common.app_logger import get_logger
from ..core.constants import SHORT_CODE_ALPHABET, SHORT_CODE_ATTEMPTS, SHORT_CODE_LENGTH

log = get_logger("qr.codes")

_system_rng = secrets.SystemRandom()


def generate_token(rng: Optional[random.Random] = None, *, length: int = SHORT_CODE_LENGTH) -> str:
    rng = rng or _system_rng
    return "".join(rng.choice(SHORT_CODE_ALPHABET) for _ in range(length))


def generate_unique_code(
    exists: Callable[[str], bool],
    *,
    rng: Optional[random.Random] = None,
    attempts: int = SHORT_CODE_ATTEMPTS,
) -> str:
    """Return a token not yet used according to `exists`.

    After `attempts` collisions a fresh token is returned unchecked; it may
    collide with an existing code.
    """
    for _ in range(attempts):
        token = generate_token(rng)
        if not exists(token):
            return token
    log.warning("no free badge code after %d attempts, using an unchecked token", attempts)
    return generate_token(rng)


def normalize_code(value: str) -> str:
    """Uppercase, keep A-Z0-9 only, truncate to the code length."""
    cleaned = "".join(ch for ch in (value or "").upper() if ch in SHORT_CODE_ALPHABET)
    return cleaned[:SHORT_CODE_LENGTH]
