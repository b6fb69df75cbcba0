"""
verify-input: Declarative field verification

This library checks user-entered field values against per-field rules:
- Explicit field registration or YAML form definitions
- Ordered, short-circuit evaluation that stops at the first failure
- Emptiness and length bounds, email, Chinese mobile phone, Chinese
  national ID (with checksum), Chinese-text, English-text and numeric checks
- A pluggable feedback sink for the failure message

Example:
    from verify_input import Form, RuleKind, ValidationEngine

    form = Form("signup")
    form.register_value("phone", "13800138000", kind=RuleKind.PHONE_CN)
    result = ValidationEngine().validate_all(form.bindings())
"""

from .api import VerifyService
from .feedback import (
    CallbackFeedbackSink,
    CollectingFeedbackSink,
    FeedbackSink,
    LoggingFeedbackSink,
    NullFeedbackSink,
)
from .form import Form, attribute_accessor, bind_attributes, bind_mapping
from .rules import FieldBinding, MisconfiguredFieldError, RuleKind, RuleSpec
from .validation_engine import Fail, Pass, ValidationEngine, ValidationResult

__version__ = "0.1.0"
__all__ = [
    "VerifyService",
    "ValidationEngine",
    "ValidationResult",
    "Pass",
    "Fail",
    "Form",
    "FieldBinding",
    "RuleSpec",
    "RuleKind",
    "MisconfiguredFieldError",
    "FeedbackSink",
    "NullFeedbackSink",
    "CollectingFeedbackSink",
    "LoggingFeedbackSink",
    "CallbackFeedbackSink",
    "attribute_accessor",
    "bind_attributes",
    "bind_mapping",
]
