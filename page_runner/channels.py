"""Host side of the two one-way text channels out of the page.

The page can't call host closures and the host can't hand closures to the page,
so only strings cross the boundary:

* log channel: print output, with line breaks swapped for a sentinel token
  (console output itself appends the newline);
* exit channel: a dialog message made of a fixed prefix plus the verdict.
"""

from __future__ import annotations

import asyncio


NEWLINE_TOKEN = "[NEWLINE]"
EXIT_CODE_PREFIX = "phantom-exit-code:"


def encode_log_message(text: str, token: str = NEWLINE_TOKEN) -> str:
    return str(text).replace("\n", token)


def decode_log_message(message: str, token: str = NEWLINE_TOKEN) -> str | None:
    """Returns the text to print, or None for a bare heartbeat token."""
    line = str(message)
    if line == token:
        return None
    return line.replace(token, "\n")


def encode_exit_signal(success: bool, prefix: str = EXIT_CODE_PREFIX) -> str:
    return prefix + ("0" if success else "1")


def decode_exit_signal(message: str, prefix: str = EXIT_CODE_PREFIX) -> int | None:
    """Parse an exit-channel message.

    None means the message isn't ours (other dialog traffic). A tagged message
    with a garbage verdict maps to 1.
    """
    msg = str(message or "")
    if not msg.startswith(prefix):
        return None
    try:
        return int(msg[len(prefix):].strip())
    except ValueError:
        return 1


class ExitLatch:
    """Single-resolution completion signal; only the first resolve counts."""

    def __init__(self) -> None:
        self._future: asyncio.Future[int] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, code: int) -> bool:
        if self._future.done():
            return False
        self._future.set_result(int(code))
        return True

    async def wait(self) -> int:
        return await asyncio.shield(self._future)
