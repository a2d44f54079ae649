from __future__ import annotations

import random
import re
from typing import Callable

from ..errors import ConflictError, ValidationError
from .config import DEFAULT_LOBBY_CONFIG, LobbyConfig

_CODE_RE = re.compile(r"[0-9]{6}")


class CodeGenerationError(ConflictError):
    code = "CODE_GENERATION_FAILED"
    default_message = "Failed to generate a unique lobby code, please try again"


def generate_code(
    is_taken: Callable[[str], bool],
    *,
    rng: random.Random | None = None,
    config: LobbyConfig = DEFAULT_LOBBY_CONFIG,
) -> str:
    """Draw random 6-digit codes until one is not taken.

    Codes never start with 0. Gives up with ``CodeGenerationError`` after
    ``config.code_attempts`` collisions.
    """
    rng = rng or random.SystemRandom()
    low = 10 ** (config.code_length - 1)
    high = 10**config.code_length - 1
    for _ in range(config.code_attempts):
        code = str(rng.randint(low, high))
        if not is_taken(code):
            return code
    raise CodeGenerationError()


def normalize_code(raw: str | int) -> str:
    """Trim and validate a user-supplied join code."""
    code = str(raw).strip()
    if not _CODE_RE.fullmatch(code):
        raise ValidationError("Valid 6-digit lobby code is required")
    return code
