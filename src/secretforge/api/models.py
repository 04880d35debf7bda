"""Request bodies for the secrets API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from secretforge.core.generator import DEFAULT_LENGTH
from secretforge.core.models import OptionSet


class OptionsPayload(BaseModel):
    """Character class flags as sent by clients; omitted flags use defaults."""

    upper: bool | None = None
    lower: bool | None = None
    numbers: bool | None = None
    symbols: bool | None = None

    def to_option_set(self) -> OptionSet:
        return OptionSet.from_flags(
            upper=self.upper,
            lower=self.lower,
            numbers=self.numbers,
            symbols=self.symbols,
        )


class GenerateRequest(BaseModel):
    """Body of POST /api/secrets/generate.

    ``length`` is accepted as any JSON value and checked by the generation
    engine, so that a non-integer length gets the same 400 body as an
    out-of-range one.
    """

    length: Any = DEFAULT_LENGTH
    options: OptionsPayload = Field(default_factory=OptionsPayload)
