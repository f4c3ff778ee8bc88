"""Renderer capability consumed by the extractor and runner.

The pipeline only needs four operations from a page: navigate, wait for a
selector, evaluate a script, close. Anything satisfying these protocols can
stand in for a real browser, including the in-memory fakes used in tests.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Session(Protocol):
    """A single rendered page owned by one target attempt."""

    async def navigate(self, url: str) -> None:
        """Load *url* and wait for the page to settle.

        Raises ``NavigationError`` or ``SelectorTimeoutError`` on failure.
        """
        ...

    async def wait_for(self, selector: str) -> None:
        """Block until *selector* resolves, or raise ``SelectorTimeoutError``."""
        ...

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run *script* in the page with *arg* and return its JSON result."""
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class Renderer(Protocol):
    """Source of fresh page sessions."""

    async def new_session(self) -> Session:
        ...
