"""
Configuration management for SiteProbe using Pydantic.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, ClassVar, List, Literal, cast

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

# --- Nested Configuration Models ---


class BrowserConfig(BaseModel):
    """Headless browser settings used for page inspection."""

    headless: bool = Field(default=True, description="Run Chromium without a visible window.")
    launch_args: List[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox"],
        description="Extra Chromium command line flags.",
    )
    user_agent: str = Field(default=DEFAULT_BROWSER_USER_AGENT, description="User-Agent of the browser context.")
    default_timeout_ms: int = Field(default=30_000, gt=0, description="Default timeout for page operations.")
    navigation_timeout_ms: int = Field(default=30_000, gt=0, description="Timeout for page navigation.")
    speed_test_timeout_ms: int = Field(default=50_000, gt=0, description="Navigation timeout for speed tests.")
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="domcontentloaded", description="Navigation lifecycle event to wait for."
    )
    settle_delay_ms: int = Field(
        default=2_000, ge=0, description="Pause after navigation so client-side rendering can finish."
    )


class ProbeConfig(BaseModel):
    """Network verification of page resources."""

    timeout: float = Field(default=5.0, gt=0, description="Per-probe timeout in seconds.")
    concurrency: int = Field(
        default=1,
        ge=1,
        description="Resources of one kind probed at the same time. 1 probes strictly one after another.",
    )
    user_agent: str = Field(
        default="SiteProbe/0.1 (+https://github.com/siteprobe/siteprobe)",
        description="User-Agent string for probe requests.",
    )


class RouteHealthConfig(BaseModel):
    """Route health measurement settings."""

    timeout: float = Field(default=15.0, gt=0, description="Timeout in seconds for every route request.")


class WebUIConfig(BaseModel):
    """Configuration for the HTTP API server."""

    host: str = Field(default="127.0.0.1", description="Host for the web server.")
    port: int = Field(default=4000, description="Port for the web server.")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Origins allowed by CORS.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and the API server."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(
        default=None,
        description="Path to log file. If None, logs to console.",
    )
    web_ui: WebUIConfig = Field(default_factory=WebUIConfig)

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "SiteProbe"
    version: str = "0.1.0"
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    routes: RouteHealthConfig = Field(default_factory=RouteHealthConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="SITEPROBE_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "siteprobe.yaml", current_dir / "siteprobe.yml"):
        if path.exists():
            return path
    return None


# --- Lazy Configuration Loader ---


class LazyConfig:
    """
    A proxy for the Config object that delays its loading and validation
    until an attribute is first accessed, so a broken config file does not
    crash the application on import.
    """

    _config: ClassVar[Config | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __getattr__(self, name: str) -> Any:
        if self.__class__._config is None:
            with self.__class__._lock:
                if self.__class__._config is None:
                    self.__class__._config = self._load_config_with_fallback()
        return getattr(self.__class__._config, name)

    def _load_config_with_fallback(self) -> Config:
        """Load configuration from file or fall back to defaults."""
        config_path = find_config_file()
        if config_path:
            try:
                log.info("Lazy loading configuration from: %s", config_path)
                return Config.from_yaml(config_path)
            except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
                log.error(
                    "Failed to load or validate configuration from '%s': %s. "
                    "Falling back to default settings. Please check your config file.",
                    config_path,
                    e,
                    exc_info=log.getEffectiveLevel() <= logging.DEBUG,
                )
        else:
            log.info("No config file found. Using default settings for lazy load.")

        try:
            return Config()
        except ValidationError as e:
            log.critical("FATAL: Default configuration is invalid: %s", e, exc_info=True)
            raise RuntimeError(f"Default configuration is invalid, cannot start: {e}") from e


# --- Global Settings Instance ---
settings: "Config" = cast("Config", LazyConfig())
