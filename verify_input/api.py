"""
Public API for verify-input

This is the "front door" - the main entry point for all verification operations.
"""

import json
import logging
import time
import urllib.parse
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from .config_loader import ConfigLoader
from .feedback import FeedbackSink, LoggingFeedbackSink, NullFeedbackSink
from .form import bind_attributes, bind_mapping, read_text
from .rule_loader import VALUED_FIELD_SCHEMA, RuleLoader, check_against_schema
from .rules import FieldBinding
from .validation_engine import ValidationEngine, ValidationResult

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MB


class VerifyService:
    """
    Main verification service class.

    Verifies field values against form definitions loaded from configuration,
    or against bindings registered by the caller.

    Example:
        from verify_input import VerifyService

        service = VerifyService()
        result = service.verify_form("login", {"account": "a@b.com", "password": "secret1"})
        if not result:
            print(f"{result.field_id}: {result.message}")
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        feedback_sink: Optional[FeedbackSink] = None,
    ):
        """
        Initialize verification service.

        Args:
            config_path: Optional local-config.yaml; the bundled one by default
            feedback_sink: Receives reported failure messages; when omitted the
                sink named by default_feedback in the local config is used

        Raises:
            ValueError: If the configuration or form definitions are invalid
            RuntimeError: If a form definition document cannot be fetched
        """
        self.config_path = config_path
        self._feedback_sink = feedback_sink
        self._initialize()

    def _initialize(self):
        """Internal initialization logic (used by __init__ and reload_forms)."""
        self.config_loader = ConfigLoader(self.config_path)
        self.rule_loader = RuleLoader(self.config_loader.get_forms_config())

        sink = self._feedback_sink
        if sink is None:
            if self.config_loader.get_default_feedback() == "none":
                sink = NullFeedbackSink()
            else:
                sink = LoggingFeedbackSink()

        self.engine = ValidationEngine(
            feedback_sink=sink,
            empty_form_passes=self.config_loader.get_empty_form_passes(),
        )

    def verify(self, bindings: Sequence[FieldBinding]) -> ValidationResult:
        """
        Verify caller-registered bindings.

        Args:
            bindings: Field bindings, e.g. Form.bindings()

        Returns:
            Pass, or Fail naming the first failing field
        """
        return self.engine.validate_all(bindings)

    def verify_form(self, form_name: str, values: Mapping[str, Any]) -> ValidationResult:
        """
        Verify a mapping of field id -> value against a configured form.

        Missing keys read as None and fail the emptiness check.

        Raises:
            ValueError: If the form is unknown
        """
        rules = self.rule_loader.load_form(form_name)
        return self.engine.validate_all(bind_mapping(values, rules))

    def verify_object(self, form_name: str, obj: Any) -> ValidationResult:
        """
        Verify an object's attributes against a configured form.

        Attributes may hold strings or text-widget-like objects.

        Raises:
            ValueError: If the form is unknown
            MisconfiguredFieldError: If an attribute holds any other type
        """
        rules = self.rule_loader.load_form(form_name)
        return self.engine.validate_all(bind_attributes(obj, rules))

    def verify_fields(self, fields: Sequence[Mapping[str, Any]]) -> ValidationResult:
        """
        Verify ad-hoc field definitions that carry their own values.

        Args:
            fields: Dicts with field_id, optional rule keys and a value

        Example:
            service.verify_fields([
                {"field_id": "phone", "kind": "PHONE_CN", "value": "13800138000"},
            ])

        Raises:
            ValueError: If a field definition does not match VALUED_FIELD_SCHEMA
                or names an unknown kind
        """
        bindings = []
        for index, field_config in enumerate(fields):
            check_against_schema(field_config, VALUED_FIELD_SCHEMA, f"field definition {index}")
            field_id, rule = RuleLoader.parse_field(field_config)
            value = field_config.get("value")
            bindings.append(
                FieldBinding(field_id=field_id, rule=rule, accessor=lambda v=value: read_text(v))
            )
        return self.engine.validate_all(bindings)

    def batch_verify(
        self,
        records: Sequence[Mapping[str, Any]],
        id_fields: Sequence[str],
        form_name: str,
    ) -> List[Dict[str, Any]]:
        """
        Verify many records against one form.

        Args:
            records: List of field id -> value mappings
            id_fields: Keys used to build each record's identifier
            form_name: Form to verify against

        Returns:
            Per-record results, in input order:
                - record_id: Joined id field values, or "unknown"
                - result: ValidationResult.to_dict()
                - execution_time_ms: Time spent verifying the record

        Raises:
            ValueError: If the form is unknown or a record is not a mapping
        """
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise ValueError(
                    f"Record {index} must be an object, got {type(record).__name__}"
                )

        results = []
        for record in records:
            start = time.time()
            result = self.verify_form(form_name, record)
            elapsed_ms = round((time.time() - start) * 1000, 2)

            results.append(
                {
                    "record_id": self._extract_id(record, id_fields),
                    "result": result.to_dict(),
                    "execution_time_ms": elapsed_ms,
                }
            )
        return results

    def batch_file_verify(
        self, file_uri: str, id_fields: Sequence[str], form_name: str
    ) -> List[Dict[str, Any]]:
        """
        Verify records loaded from a JSON file.

        Args:
            file_uri: file://, http:// or https:// URI of a JSON list (or object)
            id_fields: Keys used to build each record's identifier
            form_name: Form to verify against

        Returns:
            Per-record results (same format as batch_verify())

        Raises:
            RuntimeError: If the file cannot be loaded
            ValueError: If a loaded record is not a JSON object
        """
        records = self._load_records_from_file(file_uri)
        return self.batch_verify(records, id_fields, form_name)

    def discover_forms(self) -> Dict[str, Dict[str, Any]]:
        """
        Describe all configured forms.

        Returns:
            Dict mapping form name to {metadata, stats}

        Example:
            for name, info in service.discover_forms().items():
                print(f"{name}: {info['stats']['total_fields']} fields")
        """
        return self.rule_loader.describe_forms()

    def reload_forms(self) -> None:
        """
        Reload configuration and form definitions from source.

        Remote documents are re-fetched (their cache is cleared first).
        """
        self.config_loader.clear_cache()
        self._initialize()
        logger.info("Form definitions reloaded")

    def get_config_age(self) -> Optional[float]:
        """Seconds since form definitions were loaded."""
        return self.config_loader.get_forms_config_age()

    def _extract_id(self, record: Mapping[str, Any], id_fields: Sequence[str]) -> str:
        """
        Build a record identifier from the id fields present in the record.

        Returns:
            String identifier (joined with '-' if multiple fields)
        """
        id_parts = [str(record[field]) for field in id_fields if field in record]
        if not id_parts:
            return "unknown"
        return "-".join(id_parts)

    def _load_records_from_file(self, file_uri: str) -> List[Dict[str, Any]]:
        """
        Load records from file URI.

        Supports:
        - file:// URIs (local files)
        - http://, https:// URIs (remote files)

        Returns:
            List of record dicts

        Raises:
            RuntimeError: If file loading fails
        """
        parsed = urllib.parse.urlparse(file_uri)

        try:
            if parsed.scheme == "file":
                file_path = Path(urllib.parse.unquote(parsed.path)).resolve()
                if not file_path.is_file():
                    raise ValueError(f"File not found or not a regular file: {file_path}")
                with open(file_path, encoding="utf-8") as f:
                    data = json.load(f)
            elif parsed.scheme in ("http", "https"):
                with requests.get(file_uri, timeout=30, stream=True) as response:
                    response.raise_for_status()
                    raw = response.raw.read(MAX_FILE_SIZE + 1, decode_content=True)
                if len(raw) > MAX_FILE_SIZE:
                    raise RuntimeError(
                        f"Remote file exceeds {MAX_FILE_SIZE // (1024 * 1024)} MB limit"
                    )
                data = json.loads(raw.decode("utf-8"))
            else:
                raise ValueError(f"Unsupported URI scheme: {parsed.scheme}")

            if isinstance(data, list):
                return data
            return [data]

        except RuntimeError:
            raise
        except Exception as e:
            raise RuntimeError(f"Failed to load records from {file_uri}: {e}") from e
