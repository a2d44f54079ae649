from __future__ import annotations

import random

import pytest

from palate.errors import ValidationError
from palate.lobby.codes import CodeGenerationError, generate_code, normalize_code
from palate.lobby.config import LobbyConfig


def test_generated_code_is_six_digits():
    for _ in range(200):
        code = generate_code(lambda c: False)
        assert len(code) == 6
        assert code.isdigit()
        assert not code.startswith("0")


def test_generate_code_skips_taken_codes():
    rng = random.Random(7)
    first = generate_code(lambda c: False, rng=random.Random(7))
    code = generate_code(lambda c: c == first, rng=rng)
    assert code != first


def test_generate_code_gives_up_after_configured_attempts():
    calls = []

    def always_taken(code):
        calls.append(code)
        return True

    with pytest.raises(CodeGenerationError):
        generate_code(always_taken, config=LobbyConfig(code_attempts=3))
    assert len(calls) == 3


def test_code_generation_error_is_a_conflict():
    assert CodeGenerationError().status_code == 409


@pytest.mark.parametrize("raw", ["384920", " 384920 ", 384920, "384920\n"])
def test_normalize_code_accepts(raw):
    assert normalize_code(raw) == "384920"


@pytest.mark.parametrize("raw", ["", "12345", "1234567", "12a456", "12 456", "١٢٣٤٥٦"])
def test_normalize_code_rejects(raw):
    with pytest.raises(ValidationError, match="6-digit"):
        normalize_code(raw)
