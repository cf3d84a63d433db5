"""Abstract browser session used by the lifecycle controller."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class WindowRect:
    """Browser window geometry."""

    x: int
    y: int
    width: int
    height: int


class BrowserSession(ABC):
    """A live connection to one browser instance through the driver service.

    Implementations raise UnsupportedOperationError for calls the underlying
    driver does not implement.
    """

    @abstractmethod
    async def quit(self) -> None:
        """Close the browser and end the session."""

    @abstractmethod
    async def delete_all_cookies(self) -> None:
        """Delete every cookie visible to the current page."""

    @abstractmethod
    async def maximize_window(self) -> None:
        """Maximize the browser window."""

    @abstractmethod
    async def get_window_rect(self) -> WindowRect:
        """Return the current window position and size."""

    @abstractmethod
    async def set_window_position(self, x: int, y: int) -> None:
        """Move the browser window."""

    @abstractmethod
    async def set_window_size(self, width: int, height: int) -> None:
        """Resize the browser window."""

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load a URL in the current window."""

    @abstractmethod
    async def screenshot_png(self) -> bytes:
        """Capture the viewport as PNG bytes. May be empty."""

    @abstractmethod
    async def page_source(self) -> str:
        """Return the current page's HTML. May be empty."""

    @abstractmethod
    async def log_channels(self) -> Sequence[str]:
        """Return the names of the browser log channels available."""

    @abstractmethod
    async def read_log(self, channel: str) -> Sequence[str]:
        """Return and clear the entries of one log channel."""

    @abstractmethod
    async def describe(self) -> Mapping[str, str]:
        """Return capabilities, URL and title for diagnostic summaries."""
