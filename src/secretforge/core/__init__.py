"""Core domain: secret generation and records."""

from secretforge.core.generator import (
    CHARSETS,
    GeneratedSecret,
    InvalidOptionsError,
    SecretValidationError,
    classify_strength,
    generate,
    validate,
)
from secretforge.core.models import (
    HistoryPage,
    OptionSet,
    Pagination,
    SecretRecord,
    Statistics,
    Strength,
    StrengthBucket,
)

__all__ = [
    # Generation
    "CHARSETS",
    "GeneratedSecret",
    "InvalidOptionsError",
    "SecretValidationError",
    "classify_strength",
    "generate",
    "validate",
    # Models
    "HistoryPage",
    "OptionSet",
    "Pagination",
    "SecretRecord",
    "Statistics",
    "Strength",
    "StrengthBucket",
]
