"""Load harness settings from a YAML settings file."""

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from browser_test_harness.errors import ConfigurationMissingError
from browser_test_harness.models.settings import HarnessSettings, parse_driver_kind

log = logging.getLogger(__name__)

RUN_SETTING_KEY = "test_run_setting"
BROWSER_SECTION = "browser_settings"
ENVIRONMENT_SECTION = "environment_settings"


def _select_section(data: Mapping[str, Any], section: str, name: str) -> Any:
    sections = data.get(section) or {}
    if not isinstance(sections, Mapping) or name not in sections:
        raise ConfigurationMissingError(
            f"Settings section '{section}/{name}' not found"
        )
    return sections[name] or {}


def parse_settings(
    data: Mapping[str, Any], run_setting: str | None = None
) -> HarnessSettings:
    """Select and validate the sections for one run setting.

    Args:
        data: Parsed settings document
        run_setting: Overrides the document's ``test_run_setting``

    Raises:
        ConfigurationMissingError: If the run setting or one of its sections
            is missing
        UnsupportedDriverKindError: If the browser section names an unknown
            driver kind
        ValueError: If the selected sections fail validation

    """
    name = run_setting or data.get(RUN_SETTING_KEY)
    if not name:
        raise ConfigurationMissingError(
            f"No run setting given and '{RUN_SETTING_KEY}' is not set"
        )
    name = str(name)

    browser = _select_section(data, BROWSER_SECTION, name)
    environment = _select_section(data, ENVIRONMENT_SECTION, name)

    if isinstance(browser, Mapping) and "driver_kind" in browser:
        browser = {**browser, "driver_kind": parse_driver_kind(browser["driver_kind"])}

    try:
        return HarnessSettings.model_validate(
            {"run_setting": name, "browser": browser, "environment": environment}
        )
    except ValidationError as e:
        raise ValueError(f"Invalid settings schema for '{name}': {e}") from e


async def load_settings(path: Path, run_setting: str | None = None) -> HarnessSettings:
    """Load settings for one run setting from a YAML file.

    Raises:
        FileNotFoundError: If the settings file does not exist
        ValueError: If the file is empty, is not valid YAML, or fails validation
        ConfigurationMissingError: If a required section is missing
        UnsupportedDriverKindError: If the driver kind is not supported

    """
    if not path.is_file():
        raise FileNotFoundError(f"Settings file not found: {path}")

    content = await asyncio.to_thread(path.read_text, encoding="utf-8")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty settings file: {path}")
    if not isinstance(data, Mapping):
        raise ValueError(f"Invalid settings schema in {path}: expected a mapping")

    settings = parse_settings(data, run_setting)
    log.info(
        "Loaded settings: file=%s, run_setting=%s, driver=%s",
        path,
        settings.run_setting,
        settings.browser.driver_kind,
    )
    return settings
