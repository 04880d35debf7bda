"""Tests for secret generation and strength classification."""

import math

import pytest

from secretforge.core.generator import (
    CHARSETS,
    InvalidOptionsError,
    SecretValidationError,
    build_pool,
    classify_strength,
    entropy_bits,
    generate,
    validate,
)
from secretforge.core.models import OptionSet, Strength


class TestBuildPool:
    """Test pool assembly from option sets."""

    def test_default_pool(self) -> None:
        """Defaults select upper, lower and numbers in that order."""
        pool = build_pool(OptionSet())
        assert pool == CHARSETS["upper"] + CHARSETS["lower"] + CHARSETS["numbers"]
        assert len(pool) == 62

    def test_charset_sizes(self) -> None:
        """Each charset has its fixed size."""
        assert len(CHARSETS["upper"]) == 26
        assert len(CHARSETS["lower"]) == 26
        assert len(CHARSETS["numbers"]) == 10
        assert len(CHARSETS["symbols"]) == 21

    def test_symbols_only(self) -> None:
        """Symbols alone form the pool."""
        options = OptionSet(upper=False, lower=False, numbers=False, symbols=True)
        assert build_pool(options) == "!@#$%^&*()_+-=[]{}<>?"

    def test_all_classes(self) -> None:
        """All four classes give a pool of 83."""
        options = OptionSet(symbols=True)
        assert len(build_pool(options)) == 83


class TestClassifyStrength:
    """Test entropy-based strength classification."""

    def test_default_twelve_is_strong(self) -> None:
        """12 characters over 62 is about 71.4 bits."""
        assert entropy_bits(12, 62) == pytest.approx(71.45, abs=0.01)
        assert classify_strength(12, 62) == Strength.STRONG

    def test_eight_digits_is_weak(self) -> None:
        """8 digits is about 26.6 bits."""
        assert entropy_bits(8, 10) == pytest.approx(26.58, abs=0.01)
        assert classify_strength(8, 10) == Strength.WEAK

    def test_sixteen_lowercase_is_strong(self) -> None:
        """16 lowercase letters is about 75.2 bits."""
        assert classify_strength(16, 26) == Strength.STRONG

    def test_medium_band(self) -> None:
        """Entropy in [40, 60) is Medium."""
        # 9 * log2(26) ~= 42.3
        assert classify_strength(9, 26) == Strength.MEDIUM

    def test_lower_boundary_is_inclusive(self) -> None:
        """Exactly 40 bits is Medium, not Weak."""
        # 10 * log2(16) == 40
        assert entropy_bits(10, 16) == 40
        assert classify_strength(10, 16) == Strength.MEDIUM

    def test_upper_boundary_is_inclusive(self) -> None:
        """Exactly 60 bits is Strong."""
        # 15 * log2(16) == 60
        assert classify_strength(15, 16) == Strength.STRONG

    def test_pool_of_one_has_no_entropy(self) -> None:
        """A single-character pool carries zero bits."""
        assert entropy_bits(64, 1) == 0
        assert classify_strength(64, 1) == Strength.WEAK


class TestValidate:
    """Test request validation."""

    @pytest.mark.parametrize("length", [4, 12, 64])
    def test_accepts_lengths_in_range(self, length: int) -> None:
        """Bounds are inclusive."""
        validate(length, OptionSet())

    @pytest.mark.parametrize("length", [3, 65, 0, -1])
    def test_rejects_lengths_out_of_range(self, length: int) -> None:
        """Out-of-range lengths are rejected with the range in the message."""
        with pytest.raises(SecretValidationError, match="between 4 and 64"):
            validate(length, OptionSet())

    @pytest.mark.parametrize("length", ["12", 12.5, None, True, [12], float("inf")])
    def test_rejects_non_integers(self, length: object) -> None:
        """Strings and non-integral numbers are not lengths."""
        with pytest.raises(SecretValidationError, match="must be an integer"):
            validate(length, OptionSet())

    def test_integral_float_is_an_integer(self) -> None:
        """12.0 is the JSON number 12 and comes back as an int."""
        length = validate(12.0, OptionSet())
        assert length == 12
        assert type(length) is int

    def test_rejects_empty_options(self) -> None:
        """At least one class must be selected."""
        options = OptionSet(upper=False, lower=False, numbers=False, symbols=False)
        with pytest.raises(InvalidOptionsError, match="At least one character type"):
            validate(12, options)

    def test_invalid_options_is_a_validation_error(self) -> None:
        """Callers can catch both failures as one type."""
        assert issubclass(InvalidOptionsError, SecretValidationError)


class TestGenerate:
    """Test secret sampling."""

    def test_length_and_alphabet(self) -> None:
        """Output has the requested length and uses only pool characters."""
        options = OptionSet(upper=False, lower=True, numbers=True)
        secret = generate(32, options)
        pool = build_pool(options)
        assert len(secret.value) == 32
        assert secret.length == 32
        assert set(secret.value) <= set(pool)
        assert secret.pool_size == len(pool)

    def test_strength_matches_classification(self) -> None:
        """Strength is derived from length and pool size only."""
        secret = generate(8, OptionSet(upper=False, lower=False, numbers=True))
        assert secret.strength == Strength.WEAK
        assert secret.strength == classify_strength(8, 10)

    def test_latency_rounded_to_two_decimals(self) -> None:
        """Sampling latency is milliseconds with two decimals."""
        secret = generate(64, OptionSet(symbols=True))
        assert secret.latency_ms >= 0
        assert round(secret.latency_ms, 2) == secret.latency_ms

    def test_uses_every_selected_class_eventually(self) -> None:
        """Sampling draws from the whole pool."""
        options = OptionSet(upper=False, lower=False, numbers=True)
        seen: set[str] = set()
        for _ in range(50):
            seen.update(generate(64, options).value)
        assert seen == set(CHARSETS["numbers"])

    def test_empty_pool_rejected(self) -> None:
        """Generation refuses an empty pool even without prior validation."""
        options = OptionSet(upper=False, lower=False, numbers=False, symbols=False)
        with pytest.raises(InvalidOptionsError):
            generate(12, options)

    def test_entropy_formula(self) -> None:
        """Entropy is length times log2 of the pool size."""
        assert entropy_bits(20, 83) == pytest.approx(20 * math.log2(83))
