"""Fixtures for module tests using a Selenium testcontainer."""

from collections.abc import Generator

import pytest
from selenium.webdriver.common.desired_capabilities import DesiredCapabilities
from testcontainers.core import testcontainers_config
from testcontainers.selenium import BrowserWebDriverContainer
from yarl import URL

SELENIUM_PORT = 4444


@pytest.fixture(scope="session", autouse=True)
def _disable_ryuk() -> None:
    """Disable the extra cleanup instance, we use contexts to clean containers."""
    testcontainers_config.ryuk_disabled = True


@pytest.fixture(scope="session")
def selenium_server() -> Generator[BrowserWebDriverContainer, None, None]:
    """Start a standalone Chrome Selenium container."""
    container = BrowserWebDriverContainer(DesiredCapabilities.CHROME).with_kwargs(
        shm_size="2g"
    )

    with container as server:
        yield server
        print(server.get_logs())


@pytest.fixture(scope="session")
def selenium_url(selenium_server: BrowserWebDriverContainer) -> URL:
    """Remote WebDriver endpoint of the container."""
    return URL(selenium_server.get_connection_url())


@pytest.fixture(scope="session")
def selenium_port(selenium_server: BrowserWebDriverContainer) -> int:
    """Host port the container's WebDriver endpoint is published on."""
    return int(selenium_server.get_exposed_port(SELENIUM_PORT))
