"""Share-code generation.

A pure function with an explicit uniqueness check and a bounded number of
attempts; there is no shared generator object.
"""
import logging
import secrets
import string
from typing import Callable

from app.errors import CodeGenerationError

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


def generate_code(
    is_taken: Callable[[str], bool],
    *,
    length: int = 10,
    max_attempts: int = 5,
    alphabet: str = CODE_ALPHABET,
) -> str:
    """Return a random code for which ``is_taken`` is False."""
    for attempt in range(1, max_attempts + 1):
        code = "".join(secrets.choice(alphabet) for _ in range(length))
        if not is_taken(code):
            return code
        logger.debug("Code collision on attempt %d/%d", attempt, max_attempts)
    raise CodeGenerationError(f"No unused code found after {max_attempts} attempts")


def looks_like_code(value: str, *, length: int = 10, alphabet: str = CODE_ALPHABET) -> bool:
    return len(value) == length and all(ch in alphabet for ch in value)
