"""
Tests for log redaction and request ids
"""
import logging

from job_board.logging_config import RedactingFilter, StructuredFormatter, redact, request_id_var


class TestRedaction:
    def test_client_secret_is_masked(self):
        assert redact("token pi_3Nabc_secret_XYZ123 issued") == "token [REDACTED] issued"

    def test_api_keys_are_masked(self):
        assert "sk_live_abc123" not in redact("using key sk_live_abc123")
        assert "sk_test_abc123" not in redact("using key sk_test_abc123")

    def test_transaction_ids_are_kept(self):
        assert redact("confirmed pi_3Nabc") == "confirmed pi_3Nabc"

    def test_filter_rewrites_formatted_message(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "secret=%s", ("pi_1_secret_2",), None)

        assert RedactingFilter().filter(record) is True
        assert record.getMessage() == "secret=[REDACTED]"


class TestStructuredFormatter:
    def test_stamps_env_and_request_id(self):
        record = logging.LogRecord("job_board", logging.INFO, __file__, 1, "hello", None, None)
        token = request_id_var.set("req-42")
        try:
            line = StructuredFormatter(env="staging").format(record)
        finally:
            request_id_var.reset(token)

        assert "[staging] [req-42]" in line
        assert line.endswith("job_board: hello")

    def test_missing_request_id(self):
        record = logging.LogRecord("job_board", logging.INFO, __file__, 1, "hello", None, None)
        assert "[-]" in StructuredFormatter().format(record)


def test_incoming_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
