"""Configuration management for the page runner."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


BROWSER_ENGINES = ("chromium", "firefox", "webkit")
TIMER_SHIM_MODES = ("auto", "always", "never")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    s = str(raw).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return float(default)
    try:
        return float(str(raw).strip())
    except Exception:
        return float(default)


class FrameworkConfig(BaseModel):
    """Names of the in-page test framework hooks."""
    namespace: str = Field(default="doo.runner", description="Dotted path of the framework object on window")
    set_print_fn: str = Field(default="set_print_fn_BANG_", description="Registers the print sink")
    set_exit_fn: str = Field(default="set_exit_point_BANG_", description="Registers the completion sink")
    run_all_fn: str = Field(default="run_BANG_", description="Runs every registered test")


class RunnerConfig(BaseModel):
    """Main configuration for a page runner session."""

    # Browser settings
    browser: str = Field(default="chromium", description="Playwright engine: chromium, firefox or webkit")
    headless: bool = Field(default=True, description="Run the browser without a window")
    executable_path: Optional[str] = Field(default=None, description="Browser binary (chromium only)")
    load_timeout_seconds: float = Field(default=30.0, description="Navigation timeout for the staged document")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Document staging
    staging_dir: Optional[str] = Field(default=None, description="Where <script-name>.html is written (cwd if unset)")
    script_extensions: list[str] = Field(default_factory=lambda: [".js"], description="Suffixes that mark a fragment as a file path")

    # Channels
    exit_code_prefix: str = Field(default="phantom-exit-code:", description="Tag carried by exit-channel dialogs")
    newline_token: str = Field(default="[NEWLINE]", description="Stands in for line breaks on the log channel")
    relay_console: bool = Field(default=True, description="Echo page console messages to stdout")

    # In-page framework
    timer_shim: str = Field(default="auto", description="auto, always or never shim goog.async.nextTick")
    framework: FrameworkConfig = Field(default_factory=FrameworkConfig)


def load_config(config_path: Optional[str] = None) -> RunnerConfig:
    """Load configuration from file or environment variables."""
    if config_path is None:
        config_path = os.getenv("PAGE_RUNNER_CONFIG", "page_runner.yaml")

    config_data = {}

    # Load from file if exists
    if Path(config_path).is_file():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

    # Override with environment variables
    if os.getenv("PAGE_RUNNER_BROWSER"):
        config_data["browser"] = os.getenv("PAGE_RUNNER_BROWSER").strip().lower()
    if os.getenv("PAGE_RUNNER_HEADLESS") is not None:
        config_data["headless"] = _env_bool("PAGE_RUNNER_HEADLESS", True)
    if os.getenv("PAGE_RUNNER_LOG_LEVEL"):
        config_data["log_level"] = os.getenv("PAGE_RUNNER_LOG_LEVEL").strip().upper()
    if os.getenv("PAGE_RUNNER_LOAD_TIMEOUT_SECONDS") is not None:
        config_data["load_timeout_seconds"] = _env_float("PAGE_RUNNER_LOAD_TIMEOUT_SECONDS", 30.0)
    if os.getenv("PAGE_RUNNER_STAGING_DIR"):
        config_data["staging_dir"] = os.getenv("PAGE_RUNNER_STAGING_DIR")
    if os.getenv("PAGE_RUNNER_TIMER_SHIM"):
        config_data["timer_shim"] = os.getenv("PAGE_RUNNER_TIMER_SHIM").strip().lower()

    config = RunnerConfig(**config_data)
    if config.browser not in BROWSER_ENGINES:
        raise ValueError(f"unsupported browser engine: {config.browser}")
    if config.timer_shim not in TIMER_SHIM_MODES:
        config.timer_shim = "auto"
    return config
