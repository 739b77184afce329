"""Unit tests for submission validation guards."""
import pytest

from typefall.domain.errors import ValidationError
from typefall.domain.invariant import (
    MAX_NAME_LENGTH,
    validate_levels_completed,
    validate_limit,
    validate_player_id,
    validate_player_name,
    validate_scope_part,
    validate_score,
)


class TestValidateScore:
    @pytest.mark.parametrize("value, expected", [
        (500, 500),
        ("500", 500),
        (" 42 ", 42),
        (7.0, 7),
    ])
    def test_accepts_positive_whole_numbers(self, value, expected):
        assert validate_score(value) == expected

    def test_missing_score_raises(self):
        with pytest.raises(ValidationError, match="score"):
            validate_score(None)

    def test_blank_string_raises(self):
        with pytest.raises(ValidationError, match="score"):
            validate_score("   ")

    @pytest.mark.parametrize("value", ["abc", [1], {"a": 1}])
    def test_non_numeric_raises(self, value):
        with pytest.raises(ValidationError, match="number"):
            validate_score(value)

    @pytest.mark.parametrize("value", [0, -5, "-1"])
    def test_non_positive_raises(self, value):
        with pytest.raises(ValidationError, match="positive"):
            validate_score(value)

    def test_fraction_raises(self):
        with pytest.raises(ValidationError, match="whole"):
            validate_score(10.5)

    @pytest.mark.parametrize("value", [2**53 + 1, str(2**53 + 1), 10**400])
    def test_large_integers_are_exact(self, value):
        assert validate_score(value) == int(value)

    def test_float_text_with_whole_value(self):
        assert validate_score("500.0") == 500

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "inf"])
    def test_non_finite_raises(self, value):
        with pytest.raises(ValidationError, match="finite"):
            validate_score(value)

    def test_bool_is_not_a_score(self):
        with pytest.raises(ValidationError):
            validate_score(True)

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_score("x")


class TestValidatePlayer:
    def test_player_id_is_stripped(self):
        assert validate_player_id("  abc ") == "abc"

    def test_numeric_player_id_becomes_text(self):
        assert validate_player_id(123) == "123"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_player_id_raises(self, value):
        with pytest.raises(ValidationError, match="player_id"):
            validate_player_id(value)

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_name_raises(self, value):
        with pytest.raises(ValidationError, match="player_name"):
            validate_player_name(value)

    def test_long_name_is_truncated(self):
        assert len(validate_player_name("x" * 80)) == MAX_NAME_LENGTH


class TestValidateLevelsCompleted:
    def test_missing_defaults_to_zero(self):
        assert validate_levels_completed(None) == 0

    def test_numeric_string(self):
        assert validate_levels_completed("3") == 3

    def test_negative_raises(self):
        with pytest.raises(ValidationError, match="negative"):
            validate_levels_completed(-1)

    def test_garbage_raises(self):
        with pytest.raises(ValidationError):
            validate_levels_completed("many")


class TestValidateScopePart:
    def test_plain_value_passes(self):
        assert validate_scope_part("language", " english ") == "english"

    def test_separator_rejected(self):
        with pytest.raises(ValidationError, match="cannot contain"):
            validate_scope_part("level_id", "1|2")

    def test_missing_part_raises(self):
        with pytest.raises(ValidationError, match="difficulty"):
            validate_scope_part("difficulty", None)


class TestValidateLimit:
    def test_in_range(self):
        assert validate_limit("10", 100) == 10

    @pytest.mark.parametrize("value", [0, -1, 101, "many"])
    def test_out_of_range_raises(self, value):
        with pytest.raises(ValidationError, match="limit"):
            validate_limit(value, 100)
