from __future__ import annotations

import logging

from sqlbroker.logging_config import RedactSecretsFilter, redact_secrets


def test_redact_secrets_masks_password_pairs() -> None:
    assert redact_secrets("administratorLoginPassword=Secret-1 login=admin") == (
        "administratorLoginPassword=*** login=admin"
    )
    assert redact_secrets("{'password': 'Secret-1'}") == "{'password': '***'}"
    assert redact_secrets("nothing to hide") == "nothing to hide"


def test_filter_rewrites_the_rendered_message() -> None:
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="connecting with password=%s",
        args=("Secret-1",),
        exc_info=None,
    )

    assert RedactSecretsFilter().filter(record) is True
    assert record.getMessage() == "connecting with password=***"
