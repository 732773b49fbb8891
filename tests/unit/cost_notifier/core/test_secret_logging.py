import structlog

from cost_notifier.shared.core.config import Settings
from cost_notifier.shared.core.logging import secret_redactor, setup_logging


def test_secret_redactor_redacts_sensitive_keys():
    event = secret_redactor(
        None,
        "info",
        {
            "event": "settings_loaded",
            "aws_secret_access_key": "abc",
            "aws_access_key_id": "AKIA",
            "webhook_url": "https://hooks.slack.com/services/T/B/X",
            "region": "us-east-1",
            "nested": {"api_key": "k", "count": 3},
        },
    )

    assert event["aws_secret_access_key"] == "[REDACTED]"
    assert event["aws_access_key_id"] == "[REDACTED]"
    assert event["webhook_url"] == "[REDACTED]"
    assert event["region"] == "us-east-1"
    assert event["nested"] == {"api_key": "[REDACTED]", "count": 3}


def test_secret_redactor_scrubs_webhook_urls_from_text():
    event = secret_redactor(
        None,
        "error",
        {"event": "slack_send_exception", "error": "POST https://hooks.slack.com/services/T/B/X failed"},
    )

    assert "hooks.slack.com/services" not in event["error"]
    assert "[WEBHOOK_REDACTED]" in event["error"]


def test_setup_logging_writes_json_to_stderr(capsys):
    setup_logging(Settings(_env_file=None))

    structlog.get_logger("test").info("report_ready", total="1.00", webhook_url="secret")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert '"event": "report_ready"' in captured.err
    assert '"webhook_url": "[REDACTED]"' in captured.err


def test_setup_logging_filters_debug_unless_enabled(capsys):
    setup_logging(Settings(_env_file=None, DEBUG=False))
    structlog.get_logger("test").debug("hidden_event")
    assert "hidden_event" not in capsys.readouterr().err

    structlog.reset_defaults()
    setup_logging(Settings(_env_file=None, DEBUG=True))
    structlog.get_logger("test").debug("visible_event")
    assert "visible_event" in capsys.readouterr().err
