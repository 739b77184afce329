"""Validation guards for submissions. All of them run before storage I/O."""
from typefall.domain.errors import ValidationError

MAX_NAME_LENGTH = 50
SCOPE_SEPARATOR = "|"


def _require_text(field: str, value) -> str:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Missing required field: {field}")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"Missing required field: {field}")
    return text


def validate_player_id(value) -> str:
    return _require_text("player_id", value)


def validate_player_name(value) -> str:
    """Names are stripped and cut to MAX_NAME_LENGTH characters."""
    return _require_text("player_name", value)[:MAX_NAME_LENGTH]


def validate_score(value) -> int:
    """Scores must be positive integers; numeric strings are accepted.

    Integers and digit strings are read exactly. Only other values such as
    ``"500.0"`` go through float and must hold a whole number.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Missing required field: score")
    if isinstance(value, bool):
        raise ValidationError("Score must be a number.")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            number = _whole_number(value)
    else:
        number = _whole_number(value)
    if number <= 0:
        raise ValidationError(f"Score must be positive, got {value!r}.")
    return number


def _whole_number(value) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Score must be a number, got {value!r}.")
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"Score must be a finite number, got {value!r}.")
    if not number.is_integer():
        raise ValidationError(f"Score must be a whole number, got {value!r}.")
    return int(number)


def validate_levels_completed(value) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValidationError("levels_completed must be a number.")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"levels_completed must be a whole number, got {value!r}.")
    if number < 0:
        raise ValidationError("levels_completed cannot be negative.")
    return number


def validate_scope_part(field: str, value) -> str:
    """Level id, language and difficulty become parts of a scope id."""
    text = _require_text(field, value)
    if SCOPE_SEPARATOR in text:
        raise ValidationError(f"{field} cannot contain {SCOPE_SEPARATOR!r}.")
    return text


def validate_limit(limit, maximum: int) -> int:
    try:
        number = int(limit)
    except (TypeError, ValueError):
        raise ValidationError(f"limit must be a whole number, got {limit!r}.")
    if number < 1 or number > maximum:
        raise ValidationError(f"limit must be between 1 and {maximum}.")
    return number
