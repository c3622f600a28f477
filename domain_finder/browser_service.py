import logging
import random
from typing import List, Optional

from playwright.async_api import async_playwright, BrowserContext

from domain_finder.config import config

log = logging.getLogger(__name__)

# hides the most common automation fingerprint
_STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => undefined,
});
window.chrome = window.chrome || { runtime: {} };
"""


class BrowserSessionError(Exception):
    """Raised when the browser cannot be started."""
    pass


class BrowserSession:
    """
    One Chromium process owned by a single search invocation.

    Use as ``async with BrowserSession() as session``; the browser and every
    context opened through it are closed on exit, whatever the exit path.
    """

    def __init__(self, headless: Optional[bool] = None, user_agents: Optional[List[str]] = None,
                 ignore_https_errors: bool = True):
        self.headless = config.browser_headless if headless is None else headless
        self.user_agents = user_agents or config.user_agents
        self.ignore_https_errors = ignore_https_errors
        self._playwright = None
        self._browser = None
        self._contexts: List[BrowserContext] = []

    async def start(self):
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=["--disable-blink-features=AutomationControlled"],
        )
        log.info("BrowserSession started (headless=%s)", self.headless)

    async def stop(self):
        for context in self._contexts:
            try:
                await context.close()
            except Exception as e:
                log.debug("Context close failed: %s", e)
        self._contexts.clear()
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                log.warning("Browser close failed: %s", e)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            log.info("BrowserSession stopped")

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self.start()
        except Exception as e:
            await self.stop()
            raise BrowserSessionError(f"Could not launch browser: {e}") from e
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def new_context(self) -> BrowserContext:
        """
        Open an isolated context with a random user agent.
        """
        if self._browser is None:
            raise BrowserSessionError("BrowserSession is not started")
        user_agent = random.choice(self.user_agents)
        context = await self._browser.new_context(
            user_agent=user_agent,
            ignore_https_errors=self.ignore_https_errors,
            locale="en-US",
            viewport={"width": 1366, "height": 768},
        )
        await context.add_init_script(_STEALTH_SCRIPT)
        self._contexts.append(context)
        log.debug("New browser context with UA %s", user_agent)
        return context

    async def close_context(self, context: BrowserContext) -> None:
        if context in self._contexts:
            self._contexts.remove(context)
        await context.close()
