from __future__ import annotations

import os
from pathlib import Path

from playwright.async_api import Browser, Playwright

from .config import RunnerConfig


CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-sync",
    "--metrics-recording-only",
    "--no-first-run",
    "--no-default-browser-check",
    # file:// documents need to reach sibling files.
    "--allow-file-access-from-files",
]


def find_chromium_executable() -> str | None:
    env_path = os.getenv("CHROMIUM_PATH")
    if env_path and Path(env_path).exists():
        return env_path

    candidates = [
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    ]
    for path in candidates:
        if Path(path).exists():
            return path
    return None


def is_browser_infra_error(exc: BaseException) -> bool:
    name = type(exc).__name__
    msg = str(exc or "").lower()

    if name == "TargetClosedError":
        return True
    if "target page, context or browser has been closed" in msg:
        return True
    if "browser has been closed" in msg:
        return True

    # Renderer crashes are resource pressure on our side, not a failing test.
    if "page crashed" in msg:
        return True
    if "target crashed" in msg:
        return True

    # Playwright driver / transport died.
    if "connection closed while reading from the driver" in msg:
        return True
    if "connection closed while writing to the driver" in msg:
        return True
    if "pipe closed by peer" in msg:
        return True
    if "executable doesn't exist" in msg:
        return True

    return False


def chromium_launch_args() -> list[str]:
    args = list(CHROMIUM_ARGS)
    # Avoid renderer crashes when /dev/shm is tiny.
    try:
        st = os.statvfs("/dev/shm")
        shm_bytes = int(st.f_frsize) * int(st.f_blocks)
    except Exception:
        shm_bytes = 0
    if shm_bytes and shm_bytes < (512 * 1024 * 1024):
        args.insert(1, "--disable-dev-shm-usage")
    return args


async def launch_browser(p: Playwright, config: RunnerConfig) -> Browser:
    if config.browser == "chromium":
        executable_path = config.executable_path or find_chromium_executable()
        # Without an explicit binary Playwright falls back to its bundled chromium.
        return await p.chromium.launch(
            headless=config.headless,
            executable_path=executable_path,
            args=chromium_launch_args(),
        )
    engine = getattr(p, config.browser)
    return await engine.launch(headless=config.headless)
