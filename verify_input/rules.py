"""
Rule model for field verification.

A RuleSpec describes how one field must be checked. A FieldBinding pairs a
RuleSpec with the accessor that reads the field's current value. Both are
plain immutable data; nothing is validated at construction time.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union


class RuleKind(Enum):
    """Selects which validator applies to a field."""

    EMPTY = 1
    EMAIL = 2
    PHONE_CN = 3
    ID_CN = 4
    CN_TEXT = 5
    EN_TEXT = 6
    NUMBER = 7

    @classmethod
    def parse(cls, value: Union["RuleKind", str, int]) -> "RuleKind":
        """
        Resolve a rule kind from a member, a name (any case) or its integer code.

        Raises:
            ValueError: If the value names no known kind
        """
        if isinstance(value, cls):
            return value
        # bool is an int subclass; True/False are never rule codes
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unknown rule kind code: {value}") from None
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown rule kind: {value}") from None
        raise ValueError(f"Unknown rule kind: {value!r}")


@dataclass(frozen=True)
class RuleSpec:
    """
    How a single field must be validated.

    Attributes:
        error_message: Replaces the validator's default message when non-empty
        max_length: Upper bound on value length, inactive when <= 0
        min_length: Lower bound on value length, inactive when <= 0
        order: Evaluation order key; ties keep registration order
        report_failure: Whether a failure is sent to the feedback sink
        kind: Which validator applies
    """

    error_message: str = ""
    max_length: int = -1
    min_length: int = -1
    order: int = 1
    report_failure: bool = True
    kind: RuleKind = RuleKind.EMPTY

    def resolve_message(self, default_message: str) -> str:
        """Return the custom error message if set, else the default."""
        return self.error_message if self.error_message else default_message


ValueAccessor = Callable[[], Optional[str]]


@dataclass(frozen=True)
class FieldBinding:
    """Associates a field identifier and its rule with a value accessor."""

    field_id: str
    rule: RuleSpec
    accessor: ValueAccessor

    def read(self) -> Optional[str]:
        return self.accessor()


class MisconfiguredFieldError(TypeError):
    """A field's value source produced something other than text or None."""

    def __init__(self, field_id: str, value: object):
        self.field_id = field_id
        super().__init__(
            f"{field_id} must be a string or text-widget-like value, "
            f"got {type(value).__name__}"
        )
