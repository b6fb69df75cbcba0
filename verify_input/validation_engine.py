import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from .feedback import FeedbackSink, NullFeedbackSink
from .rules import FieldBinding, MisconfiguredFieldError
from .validators import EMPTY_MESSAGE, check_value

logger = logging.getLogger(__name__)

NO_FIELDS_MESSAGE = "no validated fields"


@dataclass(frozen=True)
class Pass:
    """Every field passed."""

    @property
    def ok(self) -> bool:
        return True

    def __bool__(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "PASS", "field_id": None, "message": ""}


@dataclass(frozen=True)
class Fail:
    """
    The first failing field and its resolved message.

    field_id is None when the pass failed because there was nothing to check.
    """

    field_id: Optional[str]
    message: str

    @property
    def ok(self) -> bool:
        return False

    def __bool__(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "FAIL", "field_id": self.field_id, "message": self.message}


ValidationResult = Union[Pass, Fail]


class ValidationEngine:
    """Orders field bindings, checks them and stops at the first failure"""

    def __init__(
        self,
        feedback_sink: Optional[FeedbackSink] = None,
        empty_form_passes: bool = False,
    ):
        """
        Initialize validation engine.

        Args:
            feedback_sink: Receives the message of a reported failure
                (defaults to a sink that discards it)
            empty_form_passes: Treat an empty binding list as a pass instead
                of a failure
        """
        self.feedback_sink = feedback_sink if feedback_sink is not None else NullFeedbackSink()
        self.empty_form_passes = empty_form_passes

    def validate_all(self, bindings: Sequence[FieldBinding]) -> ValidationResult:
        """
        Verify fields in order and report the first failure.

        Bindings are stable-sorted by rule order, so equal orders keep their
        registration order. Iteration stops at the first failing field; later
        accessors are never called. The feedback sink is notified at most
        once, and only if the failing rule reports failures.

        Args:
            bindings: Fields to verify (may be empty)

        Returns:
            Pass, or Fail with the failing field id and resolved message

        Raises:
            MisconfiguredFieldError: If an accessor returns something other
                than a string or None
        """
        if not bindings:
            if self.empty_form_passes:
                return Pass()
            logger.debug("No fields to verify")
            return Fail(None, NO_FIELDS_MESSAGE)

        for binding in self._ordered(bindings):
            message = self._check(binding)
            if message is None:
                continue

            logger.info(
                f"Field {binding.field_id} failed {binding.rule.kind.name} check: {message}"
            )
            if binding.rule.report_failure:
                self.feedback_sink.notify(message)
            return Fail(binding.field_id, message)

        return Pass()

    def _ordered(self, bindings: Sequence[FieldBinding]) -> List[FieldBinding]:
        # sorted() is stable
        return sorted(bindings, key=lambda b: b.rule.order)

    def _check(self, binding: FieldBinding) -> Optional[str]:
        """Return the resolved failure message for one field, or None."""
        rule = binding.rule
        value = binding.read()
        logger.debug(f"Checking field {binding.field_id} ({rule.kind.name})")

        if value is None:
            return rule.resolve_message(EMPTY_MESSAGE)
        if not isinstance(value, str):
            raise MisconfiguredFieldError(binding.field_id, value)

        default_message = check_value(value.strip(), rule)
        if default_message is None:
            return None
        return rule.resolve_message(default_message)
