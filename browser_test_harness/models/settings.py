"""Models for browser and environment settings loaded from the settings file."""

from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Any, Literal

from pydantic import AnyHttpUrl, Field, field_validator, model_validator

from browser_test_harness.errors import UnsupportedDriverKindError
from browser_test_harness.models.base import Model


class DriverKind(StrEnum):
    """Browser families with a driver profile."""

    CHROME = "chrome"
    INTERNET_EXPLORER = "internet-explorer"
    EDGE = "edge"


class LogLevel(StrEnum):
    """Browser and driver log verbosity."""

    OFF = "off"
    SEVERE = "severe"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"
    ALL = "all"


DRIVER_KIND_DISPLAY: Mapping[DriverKind, str] = {
    DriverKind.CHROME: "Chrome",
    DriverKind.INTERNET_EXPLORER: "Internet Explorer",
    DriverKind.EDGE: "Microsoft Edge",
}

_DRIVER_KIND_ALIASES: Mapping[str, DriverKind] = {
    "chrome": DriverKind.CHROME,
    "ie": DriverKind.INTERNET_EXPLORER,
    "internetexplorer": DriverKind.INTERNET_EXPLORER,
    "edge": DriverKind.EDGE,
    "microsoftedge": DriverKind.EDGE,
}


def parse_driver_kind(value: object) -> DriverKind:
    """Parse a driver kind name, accepting historical spellings.

    Raises:
        UnsupportedDriverKindError: If the value names no known driver kind

    """
    if isinstance(value, DriverKind):
        return value
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        if key in _DRIVER_KIND_ALIASES:
            return _DRIVER_KIND_ALIASES[key]
    raise UnsupportedDriverKindError(value, [kind.value for kind in DriverKind])


def _coerce_pair(data: Any, keys: tuple[str, str]) -> Any:
    """Turn "a, b" strings and two-item sequences into a field mapping."""
    if isinstance(data, str):
        parts = [part.strip() for part in data.split(",")]
        if len(parts) != 2:
            raise ValueError(f"Expected two comma-separated values, got {data!r}")
        return dict(zip(keys, parts, strict=True))
    if isinstance(data, Sequence) and len(data) == 2:
        return dict(zip(keys, data, strict=True))
    return data


class Point(Model):
    """Window position in screen pixels."""

    x: int
    y: int

    @model_validator(mode="before")
    @classmethod
    def _parse(cls, data: Any) -> Any:
        return _coerce_pair(data, ("x", "y"))

    def __str__(self) -> str:
        return f"{self.x}, {self.y}"


class Size(Model):
    """Window size in screen pixels."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    @model_validator(mode="before")
    @classmethod
    def _parse(cls, data: Any) -> Any:
        return _coerce_pair(data, ("width", "height"))

    def __str__(self) -> str:
        return f"{self.width} x {self.height}"


class BrowserSettings(Model):
    """Browser and driver service settings for one run setting."""

    driver_kind: DriverKind = Field(
        default=DriverKind.CHROME, description="Browser family to drive"
    )
    window_position: Point = Field(
        default=Point(x=10, y=10), description="Ignored when maximized"
    )
    window_size: Size = Field(
        default=Size(width=1600, height=900), description="Ignored when maximized"
    )
    is_maximized: bool = False
    is_headless: bool = Field(default=False, description="Chrome only")
    hide_service_window: bool = True
    default_wait_timeout_seconds: float = Field(default=3.0, ge=0)
    verbose_logging: bool = False
    log_level: LogLevel = LogLevel.WARNING
    download_dir: str | None = Field(default=None, description="Chrome only")
    ensure_clean_session: bool = Field(default=True, description="IE only")
    ignore_protected_mode: bool = Field(default=False, description="IE only")
    initial_url: str | None = Field(
        default=None, description="Opened after session setup, relative to base_uri"
    )
    page_load_strategy: Literal["normal", "eager", "none"] = "normal"
    delete_all_cookies: bool = True
    service_port: int | None = Field(
        default=None,
        gt=0,
        lt=65536,
        description="Overrides the driver profile port (one per parallel worker)",
    )
    startup_timeout_seconds: float = Field(default=20.0, gt=0)
    shutdown_grace_seconds: float = Field(default=5.0, ge=0)

    @field_validator("driver_kind", mode="before")
    @classmethod
    def _parse_driver_kind(cls, value: Any) -> DriverKind:
        try:
            return parse_driver_kind(value)
        except UnsupportedDriverKindError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("page_load_strategy", mode="before")
    @classmethod
    def _parse_page_load_strategy(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class EnvironmentSettings(Model):
    """Settings describing the application under test."""

    base_uri: AnyHttpUrl = Field(..., description="The base URI of the application")


class HarnessSettings(Model):
    """Settings selected for one test run."""

    run_setting: str = Field(..., description="Name of the selected settings section")
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    environment: EnvironmentSettings
