import json
import logging

from dexroute.logging_config import redact_secrets, setup_logging


def test_redact_secrets_masks_credentials():
    event = {"event": "session_created", "bearer_token": "eyJhbGciOi", "private_key": "0xabc", "wallet": "0x1"}
    redacted = redact_secrets(None, "info", dict(event))

    assert redacted["bearer_token"] == "***"
    assert redacted["private_key"] == "***"
    assert redacted["wallet"] == "0x1"


def test_redact_secrets_masks_bearer_inside_message():
    event = {"event": "rejected header Authorization: Bearer eyJhbGciOi.abc.def from client"}
    redacted = redact_secrets(None, "warning", dict(event))

    assert redacted["event"] == "rejected header Authorization: Bearer *** from client"


def test_setup_logging_sets_level():
    setup_logging("WARNING")
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING

    setup_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG


def test_json_lines_carry_service_and_mask_tokens(capsys):
    setup_logging("INFO", json_logs=True)
    logging.getLogger("dexroute.test").info("issued %s", "Bearer abc.def.ghi")

    line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert line["service"] == "dexroute"
    assert line["event"] == "issued Bearer ***"
    assert line["level"] == "info"
    assert line["logger"] == "dexroute.test"
