"""
Explicit field registration.

Callers describe the fields to verify by registering them, instead of having
them discovered from annotations at runtime:

    form = Form("signup")
    form.register("name", lambda: name_input.text, error_message="name required")
    form.register("phone", lambda: phone, kind=RuleKind.PHONE_CN, order=2)
    result = ValidationEngine().validate_all(form.bindings())

Value sources may be plain strings or text-widget-like objects exposing a
`text` attribute; attribute_accessor() reads either.
"""

from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple

from .rules import FieldBinding, RuleKind, RuleSpec, ValueAccessor


class Form:
    """Registration-ordered collection of field bindings."""

    def __init__(self, name: str = ""):
        self.name = name
        self._bindings: List[FieldBinding] = []

    def register(
        self,
        field_id: str,
        accessor: ValueAccessor,
        rule: Optional[RuleSpec] = None,
        **rule_fields: Any,
    ) -> FieldBinding:
        """
        Add a field to the form.

        Args:
            field_id: Unique field identifier within this form
            accessor: Zero-argument callable returning the current value
            rule: Rule to apply; built from rule_fields when omitted
            **rule_fields: RuleSpec fields (kind, order, error_message, ...)

        Returns:
            The new FieldBinding

        Raises:
            ValueError: If the field id is already registered, or both rule
                and rule_fields are given
        """
        if any(b.field_id == field_id for b in self._bindings):
            raise ValueError(f"Field already registered: {field_id}")
        if rule is not None and rule_fields:
            raise ValueError("Pass either a RuleSpec or rule fields, not both")
        if rule is None:
            if "kind" in rule_fields:
                rule_fields["kind"] = RuleKind.parse(rule_fields["kind"])
            rule = RuleSpec(**rule_fields)

        binding = FieldBinding(field_id=field_id, rule=rule, accessor=accessor)
        self._bindings.append(binding)
        return binding

    def register_value(
        self,
        field_id: str,
        value: Optional[str],
        rule: Optional[RuleSpec] = None,
        **rule_fields: Any,
    ) -> FieldBinding:
        """Add a field whose value is fixed at registration time."""
        return self.register(field_id, lambda: value, rule, **rule_fields)

    def bindings(self) -> List[FieldBinding]:
        return list(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[FieldBinding]:
        return iter(self._bindings)


def read_text(source: Any) -> Any:
    """
    Unwrap a text-widget-like value to its text.

    Strings and None pass through; objects with a `text` attribute are read
    as str(source.text). Anything else is returned unchanged so the engine
    can reject it.
    """
    if source is None or isinstance(source, str):
        return source
    if hasattr(source, "text"):
        return str(source.text)
    return source


def attribute_accessor(obj: Any, name: str) -> ValueAccessor:
    """Accessor reading obj.<name> at verification time."""
    return lambda: read_text(getattr(obj, name, None))


def bind_attributes(
    obj: Any, rules: Sequence[Tuple[str, RuleSpec]]
) -> List[FieldBinding]:
    """Build bindings for an object's attributes, one per (name, rule) pair."""
    return [
        FieldBinding(field_id=name, rule=rule, accessor=attribute_accessor(obj, name))
        for name, rule in rules
    ]


def bind_mapping(
    values: Mapping[str, Any], rules: Sequence[Tuple[str, RuleSpec]]
) -> List[FieldBinding]:
    """Build bindings for mapping keys; a missing key reads as None."""
    if not isinstance(values, Mapping):
        raise ValueError(f"Field values must be a mapping, got {type(values).__name__}")
    return [
        FieldBinding(
            field_id=key,
            rule=rule,
            accessor=lambda key=key: read_text(values.get(key)),
        )
        for key, rule in rules
    ]
