"""
Validator library - one pure check per rule kind.

All regex checks use full-string matching with ASCII semantics, so a value
with valid content plus any extra character fails. Compiled patterns are
cached process-wide on first use and never mutated afterwards, which makes
them safe to share across threads without locking.

## National ID (ID_CN)

Two-stage check:

1. Structure - 18 characters (region, century-prefixed year, month, day,
   sequence, check character) or 15 characters (no century, no check character).
2. Checksum (18 characters only) - the first 17 digits are weighted by
   ID_WEIGHTS, the sum is taken mod 11 and mapped through ID_CHECK_CHARS.
   The result must equal the 18th character, ignoring case.

Example:
    11010519491231002X
    110105   region
    19491231 birth date
    002      sequence
    X        check character (sum 167, 167 % 11 == 2 -> "X")
"""

import logging
import re
from typing import Callable, Dict, Optional

from .rules import RuleKind, RuleSpec

logger = logging.getLogger(__name__)

EMPTY_MESSAGE = "content must not be empty"
MAX_LENGTH_MESSAGE = "length must not exceed {limit}"
MIN_LENGTH_MESSAGE = "length must not be below {limit}"
EMAIL_MESSAGE = "invalid email format"
PHONE_CN_MESSAGE = "invalid phone number format"
ID_CN_MESSAGE = "invalid ID number format"
CN_TEXT_MESSAGE = "invalid Chinese-text format"
EN_TEXT_MESSAGE = "invalid English-text format"
NUMBER_MESSAGE = "invalid numeric format"

# Prefix for the empty-value message of kinds that name what they hold
EMPTY_LABELS = {
    RuleKind.EMAIL: "email",
    RuleKind.PHONE_CN: "phone number",
    RuleKind.ID_CN: "ID number",
}

ID_WEIGHTS = (7, 9, 10, 5, 8, 4, 2, 1, 6, 3, 7, 9, 10, 5, 8, 4, 2)
ID_CHECK_CHARS = ("1", "0", "X", "9", "8", "7", "6", "5", "4", "3", "2")

_MONTH = r"(?:0[1-9]|10|11|12)"
_DAY = r"(?:[0-2][1-9]|10|20|30|31)"

PATTERN_SOURCES = {
    "en": r"[a-zA-Z]+",
    "number": r"[0-9]+",
    "cn": "[\u4e00-\u9fa5]+",
    "email": r"\s*\w+(?:\.?[\w-]+)*@[a-zA-Z0-9]+(?:[-.][a-zA-Z0-9]+)*\.[a-zA-Z]+\s*",
    "phone_cn": r"(?:12|13|14|15|16|17|18|19)[0-9]{9}",
    "id_cn_18": r"[1-9][0-9]{5}(?:18|19|20)[0-9]{2}" + _MONTH + _DAY + r"[0-9]{3}[0-9Xx]",
    "id_cn_15": r"[1-9][0-9]{5}[0-9]{2}" + _MONTH + _DAY + r"[0-9]{3}",
}

# name -> compiled pattern, filled lazily, read-only once filled
_pattern_cache: Dict[str, re.Pattern] = {}


def get_pattern(name: str) -> re.Pattern:
    """
    Return the compiled pattern for a named source, compiling on first use.

    Raises:
        KeyError: If no pattern source has that name
    """
    pattern = _pattern_cache.get(name)
    if pattern is None:
        # Concurrent first use may compile twice; both results are equal
        pattern = re.compile(PATTERN_SOURCES[name], re.ASCII)
        _pattern_cache[name] = pattern
        logger.debug(f"Compiled pattern '{name}'")
    return pattern


def verify_regex(content: str, name: str) -> bool:
    """Full-string match of content against a named pattern."""
    return get_pattern(name).fullmatch(content) is not None


def verify_en(content: str) -> bool:
    return verify_regex(content, "en")


def verify_number(content: str) -> bool:
    return verify_regex(content, "number")


def verify_cn(content: str) -> bool:
    return verify_regex(content, "cn")


def verify_email(email: str) -> bool:
    """Leading and trailing whitespace around the address is tolerated."""
    return verify_regex(email, "email")


def verify_phone_cn(phone: str) -> bool:
    return verify_regex(phone, "phone_cn")


def id_check_char(id_number: str) -> str:
    """
    Compute the expected check character from the first 17 digits.

    Raises:
        ValueError: If the first 17 characters are not all digits
    """
    if len(id_number) < len(ID_WEIGHTS):
        raise ValueError(f"Need {len(ID_WEIGHTS)} digits, got {len(id_number)}")
    total = 0
    for weight, char in zip(ID_WEIGHTS, id_number):
        if not "0" <= char <= "9":
            raise ValueError(f"Not a digit: {char!r}")
        total += weight * int(char)
    return ID_CHECK_CHARS[total % 11]


def is_id_number(id_number: str) -> bool:
    """Structural match, plus the checksum for 18-character numbers."""
    if verify_regex(id_number, "id_cn_15"):
        return True
    if not verify_regex(id_number, "id_cn_18"):
        return False
    try:
        return id_check_char(id_number) == id_number[17].upper()
    except ValueError:
        return False


def empty_message(kind: RuleKind) -> str:
    label = EMPTY_LABELS.get(kind)
    return f"{label} {EMPTY_MESSAGE}" if label else EMPTY_MESSAGE


def _check_length(value: str, rule: RuleSpec) -> Optional[str]:
    if rule.max_length > 0 and len(value) > rule.max_length:
        return MAX_LENGTH_MESSAGE.format(limit=rule.max_length)
    if rule.min_length > 0 and len(value) < rule.min_length:
        return MIN_LENGTH_MESSAGE.format(limit=rule.min_length)
    return None


def _format_check(predicate: Callable[[str], bool], message: str):
    def check(value: str, rule: RuleSpec) -> Optional[str]:
        return None if predicate(value) else message

    return check


# Kind dispatch table
VALIDATORS: Dict[RuleKind, Callable[[str, RuleSpec], Optional[str]]] = {
    RuleKind.EMPTY: _check_length,
    RuleKind.EMAIL: _format_check(verify_email, EMAIL_MESSAGE),
    RuleKind.PHONE_CN: _format_check(verify_phone_cn, PHONE_CN_MESSAGE),
    RuleKind.ID_CN: _format_check(is_id_number, ID_CN_MESSAGE),
    RuleKind.CN_TEXT: _format_check(verify_cn, CN_TEXT_MESSAGE),
    RuleKind.EN_TEXT: _format_check(verify_en, EN_TEXT_MESSAGE),
    RuleKind.NUMBER: _format_check(verify_number, NUMBER_MESSAGE),
}


def check_value(value: str, rule: RuleSpec) -> Optional[str]:
    """
    Run the emptiness check and then the kind-specific check.

    Args:
        value: Field value, already trimmed
        rule: Rule selecting the check

    Returns:
        The default failure message, or None when the value passes
    """
    if not value:
        return empty_message(rule.kind)
    return VALIDATORS[rule.kind](value, rule)
