"""Tests for log redaction."""

from checkout_demo.core.logging import RedactSensitiveData, get_logger


def test_card_fields_redacted():
    """Test card data never reaches the log output."""
    processor = RedactSensitiveData()

    event = processor(None, "info", {
        "event": "Payment API request",
        "payload": {
            "amount": 300.0,
            "cardInfo": {"cardNumber": "4111111111111111", "cvv": "123"},
        },
    })

    assert event["event"] == "Payment API request"
    assert event["payload"]["amount"] == 300.0
    assert event["payload"]["cardInfo"] == "***REDACTED***"


def test_session_tokens_redacted_in_lists():
    """Test sensitive keys nested in lists are redacted."""
    processor = RedactSensitiveData()

    event = processor(None, "info", {"items": [{"session_token": "sess_1", "order_id": "demo_1"}]})

    assert event["items"] == [{"session_token": "***REDACTED***", "order_id": "demo_1"}]


def test_get_logger_accepts_keyword_context():
    """Test loggers take structured keyword context."""
    logger = get_logger("tests.logging")

    logger.info("Session status changed", order_id="demo_1", status="armed")
