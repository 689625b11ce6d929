"""
Tests for the Error Handler

Test suite for crash entry capture with configured client metadata.
"""

import json
from unittest.mock import patch

import pytest

from core.crash_entry import CrashEntry
from reporting.error_handler import ErrorHandler
from utils.config import Settings


class PaymentError(Exception):
    def __init__(self, message, amount):
        super().__init__(message)
        self.amount = amount
        self.CGLIB_proxy = "proxy"


def _charge():
    try:
        raise ConnectionError("gateway down")
    except ConnectionError as e:
        raise PaymentError("charge failed", amount=12.5) from e


class TestErrorHandler:
    """Test cases for ErrorHandler class."""

    @pytest.fixture
    def settings(self):
        return Settings(
            api_key="testAPIKey",
            client="testclient",
            environment="Debug",
            app_version="testAppVersion",
            build="42",
            revision="testSHA",
            device_id="testDeviceId",
            user_id="testUserId",
            _env_file=None,
        )

    @pytest.fixture
    def error_handler(self, settings):
        return ErrorHandler(settings)

    def test_capture_error_fills_metadata(self, error_handler):
        entry = error_handler.capture_error(ValueError("boom"), "I LOVE TACOS")

        assert isinstance(entry, CrashEntry)
        assert entry.api_key == "testAPIKey"
        assert entry.client == "testclient"
        assert entry.environment == "Debug"
        assert entry.version == "testAppVersion"
        assert entry.build == "42"
        assert entry.revision == "testSHA"
        assert entry.device_id == "testDeviceId"
        assert entry.user_id == "testUserId"
        assert entry.log_message == "I LOVE TACOS"
        assert entry.message == "boom"

    def test_capture_error_with_cause(self, error_handler):
        try:
            _charge()
        except PaymentError as e:
            entry = error_handler.capture_error(e)

        assert entry.class_name == f"{__name__}.PaymentError"
        assert entry.ivars == {'amount': 12.5}
        assert [nested.class_name for nested in entry.parent_exceptions] == ["builtins.ConnectionError"]
        assert entry.parent_exceptions[0].message == "gateway down"
        assert entry.backtraces[0].frames[0].symbol == "_charge"

    def test_capture_log_message_only(self, error_handler):
        entry = error_handler.capture_error(None, "heartbeat")

        assert entry.class_name is None
        assert entry.backtraces is None
        assert entry.ivars is None
        assert entry.parent_exceptions == []
        assert entry.message == "heartbeat"

    def test_settings_drive_extraction_policy(self, settings):
        settings.excluded_field_prefixes = ["amount"]
        settings.follow_context = False
        error_handler = ErrorHandler(settings)

        try:
            try:
                raise ConnectionError("gateway down")
            except ConnectionError:
                raise PaymentError("charge failed", amount=3)
        except PaymentError as e:
            entry = error_handler.capture_error(e)

        assert entry.ivars == {'CGLIB_proxy': "proxy"}
        assert entry.parent_exceptions == []

    def test_capture_error_json(self, error_handler):
        document = json.loads(error_handler.capture_error_json(KeyError("taco"), None))

        assert document['class_name'] == "builtins.KeyError"
        assert document['message'] == "'taco'"
        assert document['api_key'] == "testAPIKey"
        assert document['parent_exceptions'] == []

    def test_capture_error_json_with_tuple_keyed_ivars(self, error_handler):
        error = PaymentError("charge failed", amount={("USD", "card"): 12.5})

        document = json.loads(error_handler.capture_error_json(error))

        assert document['ivars'] == {'amount': {"('USD', 'card')": 12.5}}

    def test_capture_is_logged(self, error_handler):
        with patch.object(error_handler.logger, 'info') as mock_info:
            error_handler.capture_error(ValueError("boom"))

        mock_info.assert_called_once()
        assert mock_info.call_args.kwargs['class_name'] == "builtins.ValueError"
        assert mock_info.call_args.kwargs['nested_errors'] == 0
