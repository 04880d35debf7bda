"""Secret generation engine.

Builds a character pool from the selected option flags, samples a value
with a cryptographically secure random source and classifies its strength
by entropy:

    entropy = length * log2(pool_size)
    entropy < 40        -> Weak
    40 <= entropy < 60  -> Medium
    entropy >= 60       -> Strong
"""

from __future__ import annotations

import math
import secrets
import time
from dataclasses import dataclass
from typing import Final

from secretforge.core.models import OptionSet, Strength

MIN_LENGTH: Final[int] = 4
MAX_LENGTH: Final[int] = 64
DEFAULT_LENGTH: Final[int] = 12

# Pool assembly order is fixed: upper, lower, numbers, symbols
CHARSETS: Final[dict[str, str]] = {
    "upper": "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    "lower": "abcdefghijklmnopqrstuvwxyz",
    "numbers": "0123456789",
    "symbols": "!@#$%^&*()_+-=[]{}<>?",
}

WEAK_ENTROPY_BITS: Final[float] = 40.0
STRONG_ENTROPY_BITS: Final[float] = 60.0


class SecretValidationError(ValueError):
    """Generation request rejected before any sampling happens."""


class InvalidOptionsError(SecretValidationError):
    """No character class selected."""


@dataclass(frozen=True)
class GeneratedSecret:
    """Output of a single generation, not yet persisted."""

    value: str
    length: int
    options: OptionSet
    strength: Strength
    pool_size: int
    latency_ms: float


def build_pool(options: OptionSet) -> str:
    """Concatenate the charsets selected by ``options`` in fixed order."""
    return "".join(
        charset for name, charset in CHARSETS.items() if getattr(options, name)
    )


def entropy_bits(length: int, pool_size: int) -> float:
    return length * math.log2(pool_size)


def classify_strength(length: int, pool_size: int) -> Strength:
    """Classify strength from length and pool size only."""
    entropy = entropy_bits(length, pool_size)
    if entropy < WEAK_ENTROPY_BITS:
        return Strength.WEAK
    if entropy < STRONG_ENTROPY_BITS:
        return Strength.MEDIUM
    return Strength.STRONG


def validate(length: object, options: OptionSet) -> int:
    """Validate a generation request and return the length as an int.

    JSON has a single number type, so integral floats such as ``12.0`` are
    accepted. Strings are not coerced.

    Raises:
        SecretValidationError: If length is not an integer in range
        InvalidOptionsError: If no character class is selected
    """
    if isinstance(length, float) and length.is_integer():
        length = int(length)
    # bool is an int subclass but never a meaningful length
    if isinstance(length, bool) or not isinstance(length, int):
        raise SecretValidationError("Length must be an integer")
    if length < MIN_LENGTH or length > MAX_LENGTH:
        raise SecretValidationError(f"Length must be between {MIN_LENGTH} and {MAX_LENGTH}")
    if not options.any_selected():
        raise InvalidOptionsError("At least one character type must be selected")
    return length


def generate(length: int, options: OptionSet) -> GeneratedSecret:
    """Draw a random secret of ``length`` characters from the selected pool.

    ``secrets.choice`` samples indices without modulo bias. Only the
    drawing step is timed.
    """
    pool = build_pool(options)
    if not pool:
        raise InvalidOptionsError("At least one character type must be selected")

    start = time.perf_counter()
    value = "".join(secrets.choice(pool) for _ in range(length))
    latency_ms = round((time.perf_counter() - start) * 1000, 2)

    return GeneratedSecret(
        value=value,
        length=length,
        options=options,
        strength=classify_strength(length, len(pool)),
        pool_size=len(pool),
        latency_ms=latency_ms,
    )
