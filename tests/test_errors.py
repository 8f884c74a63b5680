"""Unit tests for error normalization."""
from project_pulse.utils.errors import (
    UNKNOWN_ERROR_MESSAGE,
    AuthExchangeFailedError,
    DashboardError,
    ErrorKind,
    NotAuthenticatedError,
    RemoteFetchFailedError,
    SessionFatalError,
    extract_message,
    format_error,
    handle_http_error,
    http_status_of,
    normalize_error,
    safe_string,
)

from conftest import make_http_error


class Unprintable:
    def __str__(self):
        raise RuntimeError("no")

    def __repr__(self):
        return "Unprintable()"


class TestNormalizeError:
    """Tests for normalize_error."""

    def test_dashboard_error_keeps_kind(self):
        result = normalize_error(AuthExchangeFailedError("Bad code"))
        assert result.kind == ErrorKind.AUTH_EXCHANGE_FAILED
        assert result.message == "Bad code"

    def test_string(self):
        result = normalize_error("boom")
        assert result.kind == ErrorKind.UNKNOWN
        assert result.message == "boom"

    def test_prefix(self):
        assert normalize_error(ValueError("bad"), prefix="Refresh failed").message == (
            "Refresh failed: bad"
        )

    def test_none_gets_placeholder(self):
        assert normalize_error(None).message == UNKNOWN_ERROR_MESSAGE

    def test_cause_is_kept(self):
        error = ValueError("x")
        assert normalize_error(error).cause is error

    def test_message_is_never_empty(self):
        for value in (None, "", ValueError(), {}, [], 0, Unprintable()):
            assert normalize_error(value).message


class TestExtractMessage:
    """Tests for extract_message."""

    def test_error_description_wins(self):
        payload = {"error": "invalid_grant", "error_description": "Bad Request", "message": "m"}
        assert extract_message(payload) == "Bad Request"

    def test_description_then_message(self):
        assert extract_message({"description": "d", "message": "m"}) == "d"
        assert extract_message({"message": "m"}) == "m"

    def test_attribute_fields(self):
        class OAuthFailure(Exception):
            description = "(invalid_grant) Malformed auth code."

        assert extract_message(OAuthFailure()) == "(invalid_grant) Malformed auth code."

    def test_exception_without_text_uses_type_name(self):
        assert extract_message(ValueError()) == "ValueError"

    def test_mapping_without_fields_is_json(self):
        assert extract_message({"code": 7}) == '{"code": 7}'

    def test_number(self):
        assert extract_message(42) == "42"

    def test_unprintable_falls_back_to_json(self):
        assert extract_message(Unprintable()) == '"Unprintable()"'


class TestSafeString:
    def test_fallback_for_none(self):
        assert safe_string(None, fallback="-") == "-"

    def test_str_of_value(self):
        assert safe_string(3.5) == "3.5"


class TestDashboardErrors:
    def test_defaults(self):
        assert NotAuthenticatedError().message == "Not authenticated"
        assert SessionFatalError().message == "Session expired, please sign in again."

    def test_remote_fetch_failed_str_includes_status(self):
        error = RemoteFetchFailedError("Spreadsheet or range not found.", status=404)
        assert str(error) == "Spreadsheet or range not found. (HTTP 404)"
        assert error.message == "Spreadsheet or range not found."

    def test_all_are_dashboard_errors(self):
        assert isinstance(SessionFatalError(), DashboardError)


class TestHttpErrors:
    """Tests for HTTP error mapping."""

    def test_http_status_of(self):
        assert http_status_of(make_http_error(404)) == 404
        assert http_status_of({"status": "429"}) == 429
        assert http_status_of({"status": True}) is None
        assert http_status_of(ValueError("x")) is None

    def test_known_statuses(self):
        assert handle_http_error(make_http_error(404)).message == "Spreadsheet or range not found."
        assert handle_http_error(make_http_error(429)).status == 429
        assert "sharing settings" in handle_http_error(make_http_error(403)).message

    def test_unknown_status_keeps_status(self):
        error = handle_http_error(make_http_error(500, "Internal error"))
        assert isinstance(error, RemoteFetchFailedError)
        assert error.status == 500
        assert error.message.startswith("API error: ")

    def test_without_status(self):
        error = handle_http_error(ValueError("broken pipe"))
        assert error.status is None
        assert error.message == "API error: broken pipe"


class TestFormatError:
    def test_format_error(self):
        assert format_error("Sign in", AuthExchangeFailedError("Bad code")) == (
            "Sign in failed: Bad code"
        )
