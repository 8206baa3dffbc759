from __future__ import annotations

import pytest

from page_runner.channels import (
    EXIT_CODE_PREFIX,
    NEWLINE_TOKEN,
    ExitLatch,
    decode_exit_signal,
    decode_log_message,
    encode_exit_signal,
    encode_log_message,
)


def test_log_message_line_breaks_survive_the_channel() -> None:
    text = "FAIL in (test-foo)\nexpected: 1\n  actual: 2\n"
    wire = encode_log_message(text)
    assert "\n" not in wire
    assert decode_log_message(wire) == text


def test_log_heartbeat_is_dropped() -> None:
    assert decode_log_message(NEWLINE_TOKEN) is None
    assert decode_log_message(encode_log_message("\n")) is None


def test_log_message_without_token_is_unchanged() -> None:
    assert decode_log_message("Ran 3 tests containing 5 assertions.") == "Ran 3 tests containing 5 assertions."


def test_log_custom_token() -> None:
    assert decode_log_message("a<br>b", token="<br>") == "a\nb"
    assert decode_log_message("<br>", token="<br>") is None


def test_exit_signal_success_and_failure() -> None:
    assert encode_exit_signal(True) == "phantom-exit-code:0"
    assert encode_exit_signal(False) == "phantom-exit-code:1"
    assert decode_exit_signal(encode_exit_signal(True)) == 0
    assert decode_exit_signal(encode_exit_signal(False)) == 1


def test_exit_signal_ignores_unrelated_dialogs() -> None:
    assert decode_exit_signal("Are you sure?") is None
    assert decode_exit_signal("") is None
    # Prefix must lead the message.
    assert decode_exit_signal("note: " + EXIT_CODE_PREFIX + "0") is None


def test_malformed_exit_signal_falls_back_to_failure() -> None:
    assert decode_exit_signal(EXIT_CODE_PREFIX + "true") == 1
    assert decode_exit_signal(EXIT_CODE_PREFIX) == 1


def test_exit_signal_passes_other_codes_through() -> None:
    assert decode_exit_signal(EXIT_CODE_PREFIX + "3") == 3


@pytest.mark.asyncio
async def test_exit_latch_honours_first_resolution_only() -> None:
    latch = ExitLatch()
    assert latch.done is False
    assert latch.resolve(1) is True
    assert latch.resolve(0) is False
    assert latch.done is True
    assert await latch.wait() == 1
