"""
Tests for VerifyService API

Tests all public API methods against the bundled form definitions.
"""
import json
import logging
import pytest
import yaml
from verify_input import (
    CollectingFeedbackSink,
    Fail,
    LoggingFeedbackSink,
    MisconfiguredFieldError,
    NullFeedbackSink,
    Pass,
    VerifyService,
)


@pytest.fixture
def sink():
    return CollectingFeedbackSink()


@pytest.fixture
def service(sink):
    """Create a VerifyService instance for testing."""
    return VerifyService(feedback_sink=sink)


@pytest.fixture
def registration():
    """Values that pass every field of the registration form."""
    return {
        "name": "Alice",
        "phone": "13800138000",
        "email": "alice@example.com",
        "cn_name": "张三",
        "en_name": "Alice",
        "id_number": "11010519491231002X",
        "number": "42",
    }


class TextWidget:
    def __init__(self, text):
        self.text = text


class TestInitialization:
    """Test VerifyService initialization."""

    def test_service_has_engine(self, service):
        assert service.engine is not None
        assert service.rule_loader is not None
        assert service.config_loader is not None

    def test_default_sink_from_config(self):
        service = VerifyService()
        assert isinstance(service.engine.feedback_sink, LoggingFeedbackSink)

    def test_sink_disabled_by_config(self, tmp_path):
        config = tmp_path / "local-config.yaml"
        config.write_text(yaml.safe_dump({"default_feedback": "none"}))
        service = VerifyService(config_path=str(config))
        assert isinstance(service.engine.feedback_sink, NullFeedbackSink)

    def test_empty_form_passes_from_config(self, tmp_path):
        config = tmp_path / "local-config.yaml"
        config.write_text(yaml.safe_dump({"empty_form_passes": True}))
        service = VerifyService(config_path=str(config))
        assert service.verify([]) == Pass()


class TestVerifyForm:
    """Test verify_form() method."""

    def test_valid_values_pass(self, service, sink, registration):
        assert service.verify_form("registration", registration) == Pass()
        assert sink.messages == []

    def test_bad_phone(self, service, sink, registration):
        registration["phone"] = "10800138000"
        result = service.verify_form("registration", registration)
        assert result == Fail("phone", "invalid phone number format")
        assert sink.messages == ["invalid phone number format"]

    def test_missing_value_uses_custom_message(self, service, registration):
        del registration["name"]
        result = service.verify_form("registration", registration)
        assert result == Fail("name", "name must not be empty")

    def test_first_failure_in_order(self, service, sink, registration):
        registration["email"] = "a@b"
        registration["number"] = "abc"
        result = service.verify_form("registration", registration)
        assert result.field_id == "email"
        assert len(sink.messages) == 1

    def test_bad_id_checksum(self, service, registration):
        registration["id_number"] = "110105194912310021"
        result = service.verify_form("registration", registration)
        assert result == Fail("id_number", "invalid ID number format")

    def test_login_password_bounds(self, service):
        result = service.verify_form("login", {"account": "a@b.com", "password": "12345"})
        assert result == Fail("password", "length must not be below 6")

    def test_unknown_form(self, service):
        with pytest.raises(ValueError):
            service.verify_form("missing", {})

    def test_logging_sink_reports_failure(self, registration, caplog):
        service = VerifyService()
        registration["email"] = "nope"
        with caplog.at_level(logging.WARNING, logger="verify_input.feedback"):
            service.verify_form("registration", registration)
        assert "invalid email format" in caplog.text


class TestVerifyObject:
    """Test verify_object() method."""

    def test_object_with_widgets(self, service, registration):
        class Screen:
            pass

        screen = Screen()
        for key, value in registration.items():
            setattr(screen, key, value)
        screen.number = TextWidget(" 42 ")

        assert service.verify_object("registration", screen) == Pass()

    def test_misconfigured_attribute(self, service):
        class Screen:
            account = 12345

        with pytest.raises(MisconfiguredFieldError):
            service.verify_object("login", Screen())


class TestVerifyFields:
    """Test verify_fields() method."""

    def test_ad_hoc_fields(self, service):
        result = service.verify_fields([
            {"field_id": "phone", "kind": "PHONE_CN", "value": "13800138000"},
            {"field_id": "age", "kind": "NUMBER", "value": "4o", "order": 2},
        ])
        assert result == Fail("age", "invalid numeric format")

    def test_missing_value(self, service):
        result = service.verify_fields([{"field_id": "name"}])
        assert result == Fail("name", "content must not be empty")

    def test_no_fields(self, service):
        assert not service.verify_fields([])

    def test_string_report_failure_rejected(self, service, sink):
        with pytest.raises(ValueError, match="report_failure"):
            service.verify_fields([
                {"field_id": "email", "kind": "EMAIL", "value": "bad", "report_failure": "false"},
            ])
        assert sink.messages == []

    def test_string_order_rejected(self, service):
        with pytest.raises(ValueError, match="order"):
            service.verify_fields([
                {"field_id": "a", "value": "x", "order": "2"},
                {"field_id": "b", "value": "y", "order": 1},
            ])

    def test_unknown_key_rejected(self, service):
        with pytest.raises(ValueError, match="maxLength"):
            service.verify_fields([{"field_id": "name", "value": "Alice", "maxLength": 3}])

    def test_non_string_value_rejected(self, service):
        with pytest.raises(ValueError):
            service.verify_fields([{"field_id": "age", "kind": "NUMBER", "value": 42}])


class TestBatchVerify:
    """Test batch_verify() and batch_file_verify() methods."""

    def test_results_in_input_order(self, service, registration):
        bad = dict(registration, id="R-2", email="bad")
        good = dict(registration, id="R-1")
        results = service.batch_verify([good, bad], ["id"], "registration")

        assert [r["record_id"] for r in results] == ["R-1", "R-2"]
        assert results[0]["result"]["status"] == "PASS"
        assert results[1]["result"] == {
            "status": "FAIL", "field_id": "email", "message": "invalid email format",
        }
        assert all("execution_time_ms" in r for r in results)

    def test_record_id(self, service, registration):
        record = dict(registration, region="CN", seq=7)
        results = service.batch_verify([record, registration], ["region", "seq"], "registration")
        assert results[0]["record_id"] == "CN-7"
        assert results[1]["record_id"] == "unknown"

    def test_non_mapping_record_rejected(self, service, registration, sink):
        with pytest.raises(ValueError, match="Record 1 must be an object"):
            service.batch_verify([registration, "not-a-record"], ["id"], "registration")
        assert sink.messages == []

    def test_non_mapping_values_rejected(self, service):
        with pytest.raises(ValueError, match="must be a mapping"):
            service.verify_form("login", ["alice@example.com", "secret-pw"])

    def test_batch_file_with_non_object_entry(self, service, registration, tmp_path):
        path = tmp_path / "records.json"
        path.write_text(json.dumps([registration, "oops"]))

        with pytest.raises(ValueError, match="must be an object"):
            service.batch_file_verify(path.as_uri(), ["id"], "registration")

    def test_batch_file(self, service, registration, tmp_path):
        path = tmp_path / "records.json"
        path.write_text(json.dumps([dict(registration, id="A"), dict(registration, id="B", phone="")]))

        results = service.batch_file_verify(path.as_uri(), ["id"], "registration")
        assert [r["result"]["status"] for r in results] == ["PASS", "FAIL"]
        assert results[1]["result"]["field_id"] == "phone"

    def test_batch_file_single_object(self, service, registration, tmp_path):
        path = tmp_path / "record.json"
        path.write_text(json.dumps(registration))

        results = service.batch_file_verify(path.as_uri(), ["id"], "registration")
        assert len(results) == 1

    def test_batch_file_missing(self, service, tmp_path):
        with pytest.raises(RuntimeError):
            service.batch_file_verify((tmp_path / "nope.json").as_uri(), ["id"], "registration")

    def test_batch_file_bad_scheme(self, service):
        with pytest.raises(RuntimeError):
            service.batch_file_verify("ftp://host/records.json", ["id"], "registration")


class TestDiscoverForms:
    """Test discover_forms() method."""

    def test_forms_listed(self, service):
        forms = service.discover_forms()
        assert set(forms) == {"registration", "login"}

    def test_registration_stats(self, service):
        stats = service.discover_forms()["registration"]["stats"]
        assert stats["total_fields"] == 7
        assert stats["field_ids"] == [
            "name", "phone", "email", "cn_name", "en_name", "id_number", "number",
        ]


class TestReloadForms:
    """Test reload_forms() and get_config_age() methods."""

    def test_service_works_after_reload(self, service, registration):
        service.reload_forms()
        assert service.verify_form("registration", registration) == Pass()

    def test_reload_keeps_sink(self, service, sink):
        service.reload_forms()
        assert service.engine.feedback_sink is sink

    def test_config_age(self, service):
        age = service.get_config_age()
        assert age is not None and age >= 0
