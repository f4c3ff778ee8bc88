"""Page renderer capability and its Playwright implementation."""

from stat_ingest.renderer.base import Renderer, Session
from stat_ingest.renderer.chromium import CHROMIUM_ARGS, PlaywrightRenderer, PlaywrightSession

__all__ = [
    "CHROMIUM_ARGS",
    "PlaywrightRenderer",
    "PlaywrightSession",
    "Renderer",
    "Session",
]
