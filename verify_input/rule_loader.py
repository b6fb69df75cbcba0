"""
Rule Loader - Declarative Form Definitions

Turns form definitions (parsed YAML or plain dicts) into ordered lists of
(field_id, RuleSpec) pairs. This is the configuration-driven counterpart of
registering fields by hand with verify_input.form.Form.

## Definition Format

```yaml
forms:
  registration:
    metadata:
      description: Sign-up screen
    fields:
      - field_id: name
        error_message: name must not be empty
      - field_id: phone
        kind: PHONE_CN
        order: 2
```

Every field key except field_id is optional and defaults to the RuleSpec
default. `kind` accepts a name in any case (EMAIL, email) or the integer
code 1..7.

## How It Works

1. The whole document is checked against FORMS_SCHEMA (jsonschema)
2. load_form() converts one form's fields, in declaration order
3. Results are cached per form name until the loader is rebuilt
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Tuple

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from .rules import RuleKind, RuleSpec

logger = logging.getLogger(__name__)

FIELD_SCHEMA = {
    "type": "object",
    "required": ["field_id"],
    "additionalProperties": False,
    "properties": {
        "field_id": {"type": "string", "minLength": 1},
        "kind": {"type": ["string", "integer"]},
        "error_message": {"type": "string"},
        "max_length": {"type": "integer"},
        "min_length": {"type": "integer"},
        "order": {"type": "integer"},
        "report_failure": {"type": "boolean"},
    },
}

FORMS_SCHEMA = {
    "type": "object",
    "required": ["forms"],
    "properties": {
        "forms": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["fields"],
                "properties": {
                    "metadata": {"type": "object"},
                    "fields": {"type": "array", "items": FIELD_SCHEMA},
                },
            },
        }
    },
}

# Ad-hoc field definitions carry their own value alongside the rule keys
VALUED_FIELD_SCHEMA = {
    **FIELD_SCHEMA,
    "properties": {**FIELD_SCHEMA["properties"], "value": {"type": ["string", "null"]}},
}

RULE_KEYS = ("error_message", "max_length", "min_length", "order", "report_failure")


def check_against_schema(document: Any, schema: Dict[str, Any], what: str) -> None:
    """
    Raise ValueError describing the first schema violation, if any.

    Args:
        document: Parsed document to check
        schema: JSON schema
        what: Name of the document for the error message
    """
    e = best_match(Draft7Validator(schema).iter_errors(document))
    if e is not None:
        error_path = " -> ".join(str(p) for p in e.path) if e.path else "root"
        raise ValueError(f"Invalid {what} at {error_path}: {e.message}")


class RuleLoader:
    """Builds RuleSpecs from declarative form definitions"""

    def __init__(self, forms_config: Dict[str, Any]):
        """
        Initialize rule loader.

        Args:
            forms_config: Dict with a top-level "forms" mapping

        Raises:
            ValueError: If the definitions do not match FORMS_SCHEMA
        """
        check_against_schema(forms_config, FORMS_SCHEMA, "form definitions")
        self.forms = forms_config["forms"]
        self.loaded_forms: Dict[str, List[Tuple[str, RuleSpec]]] = {}

    def form_names(self) -> List[str]:
        return list(self.forms)

    def load_form(self, form_name: str) -> List[Tuple[str, RuleSpec]]:
        """
        Load the fields of one form.

        Args:
            form_name: Name under the "forms" mapping

        Returns:
            List of (field_id, RuleSpec) in declaration order

        Raises:
            ValueError: If the form is unknown, a kind is unknown, or a
                field id appears twice
        """
        if form_name in self.loaded_forms:
            return list(self.loaded_forms[form_name])

        if form_name not in self.forms:
            raise ValueError(f"Unknown form: {form_name}")

        fields = [self.parse_field(f) for f in self.forms[form_name]["fields"]]
        duplicates = [
            field_id
            for field_id, count in Counter(f for f, _ in fields).items()
            if count > 1
        ]
        if duplicates:
            raise ValueError(
                f"Form {form_name} declares fields more than once: {', '.join(duplicates)}"
            )

        logger.debug(f"Loaded form {form_name} with {len(fields)} fields")
        self.loaded_forms[form_name] = fields
        return list(fields)

    @staticmethod
    def parse_field(field_config: Dict[str, Any]) -> Tuple[str, RuleSpec]:
        """
        Convert one field definition into (field_id, RuleSpec).

        Keys other than field_id, kind and the RuleSpec fields are ignored,
        so callers may carry extra data (such as a value) in the same dict.

        Raises:
            ValueError: If field_id is missing or kind is unknown
        """
        field_id = field_config.get("field_id")
        if not field_id:
            raise ValueError("Field definition is missing field_id")

        kwargs = {k: field_config[k] for k in RULE_KEYS if k in field_config}
        kwargs["kind"] = RuleKind.parse(field_config.get("kind", RuleKind.EMPTY))
        return field_id, RuleSpec(**kwargs)

    def describe_forms(self) -> Dict[str, Dict[str, Any]]:
        """
        Describe every form with its metadata and statistics.

        Returns:
            Dict mapping form name to {metadata, stats} where stats holds
            total_fields, fields_by_kind and field_ids (evaluation order)
        """
        result = {}
        for form_name, form_data in self.forms.items():
            fields = self.load_form(form_name)
            evaluation_order = sorted(fields, key=lambda f: f[1].order)
            kinds = Counter(rule.kind.name for _, rule in fields)

            result[form_name] = {
                "metadata": dict(form_data.get("metadata", {})),
                "stats": {
                    "total_fields": len(fields),
                    "fields_by_kind": dict(kinds),
                    "field_ids": [field_id for field_id, _ in evaluation_order],
                },
            }
        return result
