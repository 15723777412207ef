import asyncio
import json
import logging
from unittest.mock import AsyncMock

import pytest

from voicegate.stream.errors import ALL_CODES, FATAL_CLOSE, RECOVERABLE, emit_error, log_event


def test_error_codes():
    assert FATAL_CLOSE == {"INVALID_CONFIG"}
    assert RECOVERABLE == {"ASR_FAIL", "ASR_UNAVAILABLE"}
    assert ALL_CODES == FATAL_CLOSE | RECOVERABLE


def test_emit_error_defaults_recoverable_from_code():
    send = AsyncMock()
    asyncio.run(emit_error(send, "ASR_FAIL", "boom"))
    asyncio.run(emit_error(send, "INVALID_CONFIG", "bad"))
    first, second = [c.args[0] for c in send.await_args_list]
    assert first.recoverable is True
    assert second.recoverable is False


@pytest.mark.parametrize("code", ["PROTOCOL_VIOLATION", "INTERNAL", "NOPE"])
def test_emit_error_rejects_unknown_codes(code):
    send = AsyncMock()
    with pytest.raises(ValueError):
        asyncio.run(emit_error(send, code, "x"))
    send.assert_not_awaited()


def test_log_event_writes_json(caplog):
    with caplog.at_level(logging.INFO, logger="voicegate.stream"):
        log_event("session_open", session_id="abc")
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["event"] == "session_open"
    assert payload["session_id"] == "abc"
