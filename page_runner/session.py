"""Drives one page session: stage, load, install sinks, run, await the verdict.

Everything after navigation is a reaction to page events (exposed log
function, dialogs, page errors). The host never polls; it waits on a single
resolution latch that either the exit channel or a page error resolves.
"""

from __future__ import annotations

import asyncio
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Sequence, TextIO

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from .browser import is_browser_infra_error, launch_browser
from .channels import ExitLatch, decode_exit_signal, decode_log_message
from .config import RunnerConfig
from .document import (
    assemble_document,
    discard_document,
    resolve_fragments,
    stage_document,
    staged_document_path,
)
from .sinks import INSTALL_SINKS_JS, LOG_FUNCTION_NAME, RUN_TESTS_JS, installer_args


logger = structlog.get_logger(__name__)


def _log_failure(event: str, exc: BaseException, **fields: Any) -> bool:
    """Log a browser-side failure; returns True when it was infrastructure, not the tests."""
    infra = is_browser_infra_error(exc)
    if infra:
        event = "Browser infrastructure failure, no verdict from the tests"
    logger.error(event, error_kind=type(exc).__name__, error=str(exc), browser_infra_error=infra, **fields)
    return infra


class SessionState(str, Enum):
    IDLE = "idle"
    DOCUMENT_STAGED = "document_staged"
    LOADING = "loading"
    LOADED = "loaded"
    SINKS_INSTALLED = "sinks_installed"
    RUNNING = "running"
    TERMINATED = "terminated"


class PageSession:
    """Bridges a single Playwright page to this process's stdout and exit code."""

    def __init__(
        self,
        page: Page,
        config: RunnerConfig,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ):
        self.page = page
        self.config = config
        self.state = SessionState.IDLE
        self.load_status: str | None = None
        self.timer_shimmed: bool | None = None
        self.exit_reason: str | None = None
        self._stdout = stdout
        self._stderr = stderr
        self._latch = ExitLatch()

    # -- output -----------------------------------------------------------

    def _write(self, stream: TextIO | None, fallback: TextIO, text: str) -> None:
        out = stream or fallback
        out.write(text + "\n")
        out.flush()

    def _print(self, text: str) -> None:
        self._write(self._stdout, sys.stdout, text)

    def _print_error(self, text: str) -> None:
        self._write(self._stderr, sys.stderr, text)

    # -- termination ------------------------------------------------------

    @property
    def terminated(self) -> bool:
        return self._latch.done

    def terminate(self, code: int, *, reason: str) -> None:
        if not self._latch.resolve(code):
            return
        self.state = SessionState.TERMINATED
        self.exit_reason = reason
        logger.debug("Session terminated", exit_code=int(code), reason=reason)

    # -- page event handlers ------------------------------------------------

    def _on_log_message(self, message: Any) -> None:
        line = decode_log_message(str(message), self.config.newline_token)
        if line is not None:
            self._print(line)

    def _on_console(self, msg: Any) -> None:
        if self.config.relay_console:
            self._print(str(msg.text))

    async def _on_dialog(self, dialog: Any) -> None:
        code = decode_exit_signal(dialog.message, self.config.exit_code_prefix)
        if code is not None:
            self.terminate(code, reason="exit_signal")
        # An unanswered alert blocks the page.
        try:
            await dialog.accept()
        except PlaywrightError:
            pass

    def _on_page_error(self, error: Any) -> None:
        self._print_error(str(getattr(error, "message", None) or error))
        self.terminate(1, reason="page_error")

    async def attach(self) -> None:
        """Register the host-side ends of every channel."""
        await self.page.expose_function(LOG_FUNCTION_NAME, self._on_log_message)
        self.page.on("console", self._on_console)
        self.page.on("dialog", self._on_dialog)
        self.page.on("pageerror", self._on_page_error)

    # -- lifecycle ----------------------------------------------------------

    async def load(self, html: str, path: Path) -> str:
        stage_document(path, html)
        self.state = SessionState.DOCUMENT_STAGED

        self.state = SessionState.LOADING
        timeout_ms = max(0.0, float(self.config.load_timeout_seconds)) * 1000.0
        try:
            await self.page.goto(path.as_uri(), wait_until="load", timeout=timeout_ms)
            status = "success"
        except PlaywrightError as exc:
            status = "fail"
            logger.debug("Navigation error", error=str(exc))
        finally:
            # The document has been parsed (or never will be); it isn't needed past load.
            discard_document(path)

        if not self.terminated:
            self.state = SessionState.LOADED
        self.load_status = status
        if status == "fail":
            logger.warning(f"Failed to open: {path}")
        return status

    async def install_sinks(self) -> None:
        self.timer_shimmed = bool(await self.page.evaluate(INSTALL_SINKS_JS, installer_args(self.config)))
        self.state = SessionState.SINKS_INSTALLED
        logger.debug("Sinks installed", timer_shim=self.timer_shimmed)

    async def start_tests(self) -> None:
        await self.page.evaluate(RUN_TESTS_JS, installer_args(self.config))
        if not self.terminated:
            self.state = SessionState.RUNNING

    async def drive(self, html: str, path: Path) -> None:
        await self.load(html, path)
        # A load failure isn't fatal; sinks are installed regardless.
        if self.terminated:
            return
        try:
            await self.install_sinks()
            if self.terminated:
                return
            await self.start_tests()
        except PlaywrightError as exc:
            if self.terminated:
                return
            if is_browser_infra_error(exc):
                _log_failure("Page evaluation failed", exc, state=self.state.value)
                self.terminate(1, reason="browser_infra")
                return
            self._print_error(str(getattr(exc, "message", None) or exc))
            self.terminate(1, reason="page_error")

    def _on_driver_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        _log_failure("Session driver failed", exc)
        self.terminate(1, reason="driver_error")

    async def run(self, html: str, path: Path) -> int:
        """Load `html` from `path`, start the tests and wait for the verdict."""
        await self.attach()
        driver = asyncio.create_task(self.drive(html, path))
        driver.add_done_callback(self._on_driver_done)
        try:
            code = await self._latch.wait()
        finally:
            if not driver.done():
                driver.cancel()
                try:
                    await driver
                except asyncio.CancelledError:
                    pass
        self.state = SessionState.TERMINATED
        return code


async def run_suite(script_name: str, fragment_args: Sequence[str], config: RunnerConfig) -> int:
    """Assemble the fragments, run them in a fresh browser page, return the exit code."""
    fragments = resolve_fragments(fragment_args, config.script_extensions)
    html = assemble_document(fragments)
    path = staged_document_path(script_name, config.staging_dir)
    logger.debug("Assembled test document", fragments=len(fragments), path=str(path))

    async with async_playwright() as p:
        try:
            browser = await launch_browser(p, config)
        except PlaywrightError as exc:
            _log_failure("Could not launch browser", exc, browser=config.browser)
            return 1

        context = None
        page = None
        try:
            context = await browser.new_context()
            page = await context.new_page()
            session = PageSession(page, config)
            return await session.run(html, path)
        except PlaywrightError as exc:
            _log_failure("Browser session failed", exc)
            return 1
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception:
                    pass
            if context is not None:
                try:
                    await context.close()
                except Exception:
                    pass
            try:
                await browser.close()
            except Exception:
                pass
