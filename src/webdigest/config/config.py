"""
Configuration management for webdigest using Pydantic.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, ClassVar, List, Literal, cast

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from webdigest import __version__

log = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

KNOWN_STRATEGIES = ("readability", "rsc", "trafilatura")

CONFIG_ENV_VAR = "WEBDIGEST_CONFIG"
CONFIG_FILENAMES = ("webdigest.yaml", "webdigest.yml")

# --- Nested Configuration Models ---


class FetchConfig(BaseModel):
    """HTTP fetch limits and request shape."""

    timeout_ms: int = Field(default=30000, gt=0, description="Per-request timeout in milliseconds.")
    user_agent: str = Field(
        default=f"Mozilla/5.0 (compatible; webdigest/{__version__})",
        description="User-Agent string for HTTP requests.",
    )
    accept: str = Field(default=DEFAULT_ACCEPT, description="Accept header sent with every request.")
    max_response_bytes: int = Field(default=5 * MEGABYTE, gt=0, description="Body ceiling for non-PDF responses.")
    max_pdf_response_bytes: int = Field(default=20 * MEGABYTE, gt=0, description="Body ceiling for PDF responses.")
    max_content_length: int = Field(default=10000, gt=0, description="Characters kept before truncation.")
    concurrency_limit: int = Field(default=3, ge=1, description="Simultaneous fetches within one batch.")
    chunk_size: int = Field(default=64 * 1024, gt=0, description="Read size used while streaming bodies.")
    raw_text_hosts: List[str] = Field(
        default_factory=lambda: ["raw.githubusercontent.com", "gist.githubusercontent.com"],
        description="Hosts whose responses are always treated as plain text.",
    )

    @field_validator("raw_text_hosts")
    @classmethod
    def normalize_hosts(cls, v: List[str]) -> List[str]:
        return [host.strip().lower() for host in v if host.strip()]


class ExtractionSettings(BaseModel):
    """Configuration for the HTML strategy chain."""

    strategy_order: List[str] = Field(
        default=["readability", "rsc"], description="Order of HTML strategies to try."
    )

    @field_validator("strategy_order")
    @classmethod
    def validate_strategy_order(cls, v: List[str]) -> List[str]:
        """Ensure the chain is non-empty and only names known strategies."""
        if not v:
            raise ValueError("strategy_order must contain at least one strategy")
        unknown = [name for name in v if name not in KNOWN_STRATEGIES]
        if unknown:
            raise ValueError(f"Unknown strategies {unknown}. Available strategies: {list(KNOWN_STRATEGIES)}")
        return v


class PdfConfig(BaseModel):
    """Where extracted PDF text is written."""

    output_dir: Path = Field(
        default_factory=lambda: Path.home() / ".webdigest" / "pdf",
        description="Directory receiving one markdown file per extracted PDF.",
    )

    @field_validator("output_dir", mode="before")
    @classmethod
    def create_output_dir(cls, v: Any) -> Path:
        path = Path(v).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path


class MonitoringConfig(BaseModel):
    """Configuration for logging, metrics and the activity history."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Root logging level."
    )
    log_file: str | None = Field(default=None, description="JSON log file; console logging on stderr when unset.")
    activity_history: int = Field(default=100, ge=1, description="Finished activities kept in memory.")
    metrics_enabled: bool = Field(default=True, description="Record prometheus metrics for fetches.")

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("log_file", mode="before")
    @classmethod
    def ensure_log_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        log_path = Path(v).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return str(log_path)


class Config(BaseSettings):
    """Top-level settings; environment variables use ``WEBDIGEST_SECTION__FIELD``."""

    project_name: str = "webdigest"
    version: str = __version__
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    pdf: PdfConfig = Field(default_factory=PdfConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="WEBDIGEST_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Build a Config from a YAML mapping; an empty document yields the defaults."""
        source = Path(path).expanduser()
        log.debug("Reading configuration from %s", source)
        try:
            document = yaml.safe_load(source.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise FileNotFoundError(f"No configuration file at {source}") from None

        if document is None:
            log.warning("%s is empty, using default settings", source)
            document = {}
        if not isinstance(document, dict):
            raise ValueError(f"{source}: top level must be a mapping, not {type(document).__name__}")
        return cls.model_validate(document)


def find_config_file() -> Path | None:
    """``$WEBDIGEST_CONFIG`` if set, else ``webdigest.yaml``/``.yml`` in the working directory."""
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()
    cwd = Path.cwd()
    return next((cwd / name for name in CONFIG_FILENAMES if (cwd / name).is_file()), None)


# --- Lazily loaded global settings ---


class LazyConfig:
    """
    Stand-in for the global Config. The file is located and validated on
    first attribute access; a file that fails to load is reported and the
    defaults are used instead.
    """

    _loaded: ClassVar[Config | None] = None
    _guard: ClassVar[threading.Lock] = threading.Lock()

    def __getattr__(self, name: str) -> Any:
        return getattr(self.load(), name)

    def load(self) -> Config:
        cls = type(self)
        if cls._loaded is None:
            with cls._guard:
                if cls._loaded is None:
                    cls._loaded = self._resolve()
        return cls._loaded

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded settings so the next access reads them again."""
        with cls._guard:
            cls._loaded = None

    def _resolve(self) -> Config:
        path = find_config_file()
        if path is None:
            log.debug("No configuration file found, using defaults")
        else:
            try:
                config = Config.from_yaml(path)
            except (ValueError, OSError, yaml.YAMLError) as e:
                log.error("Ignoring configuration file %s: %s", path, e)
            else:
                log.info("Loaded configuration from %s", path)
                return config

        try:
            return Config()
        except ValidationError as e:
            raise RuntimeError(f"Default configuration is invalid: {e}") from e


_lazy_settings = LazyConfig()
settings: "Config" = cast("Config", _lazy_settings)


def get_settings() -> Config:
    """Return the loaded global Config (loading it on first use)."""
    return _lazy_settings.load()
