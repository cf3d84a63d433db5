"""Selenium-backed browser sessions."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.remote.command import Command
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support.wait import WebDriverWait
from urllib3.exceptions import HTTPError
from yarl import URL

from browser_test_harness.drivers.base import BrowserSession, WindowRect
from browser_test_harness.drivers.profile import DriverProfile
from browser_test_harness.errors import SessionCreateFailure, UnsupportedOperationError
from browser_test_harness.models.settings import DRIVER_KIND_DISPLAY, BrowserSettings

log = logging.getLogger(__name__)

SessionFactory: TypeAlias = Callable[
    [DriverProfile, BrowserSettings, URL], Awaitable[BrowserSession]
]


def format_log_entry(entry: Mapping[str, Any]) -> str:
    """Render one browser log entry as a single line."""
    return (
        f"[{entry.get('timestamp', '')}] [{entry.get('level', '')}] "
        f"{entry.get('message', '')}\n"
    )


@dataclass(frozen=True, kw_only=True)
class SeleniumSession(BrowserSession):
    """Browser session driven through a Selenium Remote WebDriver.

    Selenium is synchronous; every call runs in a worker thread so the
    controller's deadlines apply.
    """

    driver: WebDriver = field(repr=False)
    wait_timeout: float = 3.0

    def wait(self, timeout: float | None = None) -> WebDriverWait:
        """Return an explicit wait bound to the configured default timeout."""
        return WebDriverWait(
            self.driver, self.wait_timeout if timeout is None else timeout
        )

    async def quit(self) -> None:
        await asyncio.to_thread(self.driver.quit)

    async def delete_all_cookies(self) -> None:
        await asyncio.to_thread(self.driver.delete_all_cookies)

    async def maximize_window(self) -> None:
        await asyncio.to_thread(self.driver.maximize_window)

    async def get_window_rect(self) -> WindowRect:
        rect = await asyncio.to_thread(self.driver.get_window_rect)
        return WindowRect(
            x=rect["x"], y=rect["y"], width=rect["width"], height=rect["height"]
        )

    async def set_window_position(self, x: int, y: int) -> None:
        await asyncio.to_thread(self.driver.set_window_position, x, y)

    async def set_window_size(self, width: int, height: int) -> None:
        await asyncio.to_thread(self.driver.set_window_size, width, height)

    async def navigate(self, url: str) -> None:
        await asyncio.to_thread(self.driver.get, url)

    async def screenshot_png(self) -> bytes:
        return await asyncio.to_thread(self.driver.get_screenshot_as_png)

    async def page_source(self) -> str:
        return await asyncio.to_thread(lambda: self.driver.page_source or "")

    async def log_channels(self) -> Sequence[str]:
        response = await self._execute_log_command(Command.GET_AVAILABLE_LOG_TYPES)
        return list(response.get("value") or [])

    async def read_log(self, channel: str) -> Sequence[str]:
        response = await self._execute_log_command(Command.GET_LOG, {"type": channel})
        return [format_log_entry(entry) for entry in response.get("value") or []]

    async def describe(self) -> Mapping[str, str]:
        def _describe() -> Mapping[str, str]:
            return {
                "Browser Caps": json.dumps(self.driver.capabilities, sort_keys=True),
                "Browser URL": self.driver.current_url,
                "Browser Title": self.driver.title,
            }

        return await asyncio.to_thread(_describe)

    async def _execute_log_command(
        self, command: str, params: Mapping[str, Any] | None = None
    ) -> Mapping[str, Any]:
        try:
            return await asyncio.to_thread(
                self.driver.execute, command, dict(params) if params else None
            )
        except WebDriverException as exc:
            raise UnsupportedOperationError(
                f"Log command '{command}' not supported by this driver: {exc.msg}"
            ) from exc


async def create_session(
    profile: DriverProfile, settings: BrowserSettings, endpoint: URL
) -> SeleniumSession:
    """Create a browser session on a running driver service.

    Raises:
        SessionCreateFailure: If the service rejects the session, typically
            because the browser is not installed

    """
    options = profile.options_factory(settings)
    options.page_load_strategy = settings.page_load_strategy

    log.info(
        "Creating %s session: endpoint=%s, headless=%s, maximized=%s",
        DRIVER_KIND_DISPLAY[profile.kind],
        endpoint,
        settings.is_headless,
        settings.is_maximized,
    )

    try:
        driver = await asyncio.to_thread(
            webdriver.Remote, command_executor=str(endpoint), options=options
        )
    except (WebDriverException, HTTPError, OSError) as exc:
        raise SessionCreateFailure(
            f"Failed to create {DRIVER_KIND_DISPLAY[profile.kind]} session at "
            f"{endpoint}. The browser may not be installed on this machine: {exc}"
        ) from exc

    return SeleniumSession(
        driver=driver, wait_timeout=settings.default_wait_timeout_seconds
    )
