"""Human-friendly invite codes.

31-character alphabet: digits 2-9 and A-Z without I, L and O, so a code read
aloud or copied by hand cannot confuse 0/O or 1/I/L.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable

from app.errors import InviteCodeExhaustedError

logger = logging.getLogger(__name__)

INVITE_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"


def generate_invite_code(length: int = 8) -> str:
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: str) -> str:
    return code.strip().upper()


def generate_unique_code(
    exists: Callable[[str], bool],
    length: int = 8,
    max_attempts: int = 5,
    generator: Callable[[int], str] = generate_invite_code,
) -> str:
    """Generate a code not already taken.

    Args:
        exists: Lookup returning True when a code is already in use.
        length: Code length.
        max_attempts: Generation attempts before giving up.
        generator: Code source (injectable for tests).

    Raises:
        InviteCodeExhaustedError: every attempt collided.
    """
    for attempt in range(1, max_attempts + 1):
        code = generator(length)
        if not exists(code):
            return code
        logger.warning("Invite code collision on attempt %d/%d", attempt, max_attempts)
    raise InviteCodeExhaustedError(max_attempts)
