"""Per-item validation: decides whether a raw answer is an error, a warning, or acceptable."""

from __future__ import annotations

import re

from fleetcheck.common.models import (
    NUMERIC_VALIDATION_TYPES,
    Item,
    ValidationBehavior,
    ValidationResult,
    VerdictKind,
)


REQUIRED_MESSAGE = "This is a required field"
VALID_MESSAGE = "Valid value"

# Leading numeric prefix, as a browser parseFloat reads it ("75 psi" -> 75).
_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_number(raw_value: str) -> float | None:
    match = _NUMBER_PREFIX.match(raw_value)
    if not match:
        return None
    return float(match.group(1))


def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _flag_kind(item: Item) -> VerdictKind:
    if item.validation_behavior is ValidationBehavior.RAISES_ERROR:
        return VerdictKind.ERROR
    return VerdictKind.WARNING


def validate_item(item: Item, raw_value: str) -> ValidationResult:
    """Apply the item's validation policy to one raw answer.

    Rules are checked in order and the first match wins: disabled validation,
    required-but-blank, configured error values, then the numeric range for
    min_max and quantity items. A numeric item whose value does not parse is
    not range-checked and comes back correct.
    """
    config = item.config
    if config is None or item.validation_behavior is ValidationBehavior.NO_VALIDATION:
        return ValidationResult(kind=VerdictKind.CORRECT, message="")

    if item.is_required and not raw_value.strip():
        return ValidationResult(kind=VerdictKind.ERROR, message=REQUIRED_MESSAGE)

    if raw_value in config.error_values:
        kind = _flag_kind(item)
        outcome = "raises an error" if kind is VerdictKind.ERROR else "raises a warning"
        return ValidationResult(kind=kind, message=f'The value "{raw_value}" {outcome}')

    if item.validation_type in NUMERIC_VALIDATION_TYPES:
        number = parse_number(raw_value)
        if number is not None and config.error_outside_range:
            if config.min is not None and number < config.min:
                return ValidationResult(
                    kind=_flag_kind(item),
                    message=f"The value {format_number(number)} is below minimum ({format_number(config.min)})",
                )
            if config.max is not None and number > config.max:
                return ValidationResult(
                    kind=_flag_kind(item),
                    message=f"The value {format_number(number)} is above maximum ({format_number(config.max)})",
                )

    return ValidationResult(kind=VerdictKind.CORRECT, message=VALID_MESSAGE)
