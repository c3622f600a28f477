"""
Search engine fallback for domains that cannot be guessed.

This module drives a real browser against several search engines at once
and collects the hostnames of their organic results. It provides:
- One isolated browser context per engine, each with a random user agent
- A random pre-navigation delay to look less like a bot
- Challenge (CAPTCHA) detection with a manual-solve wait loop
- Per-engine failure isolation
"""

import asyncio
import logging
import random
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote_plus

from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PWTimeout

from domain_finder.browser_service import BrowserSession, BrowserSessionError
from domain_finder.config import config
from domain_finder.http import hostname_from_href, is_public_hostname, registered_domain

# Initialize logger
log = logging.getLogger(__name__)


class SearchFallbackError(Exception):
    """Exception raised for search fallback errors."""
    pass


class CaptchaTimeoutError(SearchFallbackError):
    """Raised when a challenge page is not solved in time."""
    pass


@dataclass(frozen=True)
class SearchEngine:
    name: str
    url_template: str
    results_selector: str
    captcha_selector: str
    own_domains: Tuple[str, ...] = ()

    def query_url(self, query: str) -> str:
        return self.url_template.format(query=quote_plus(query))


SEARCH_ENGINES: Dict[str, SearchEngine] = {
    "duckduckgo": SearchEngine(
        name="DuckDuckGo",
        url_template="https://duckduckgo.com/?q={query}&t=h_&ia=web",
        results_selector='a[data-testid="result-title-a"], a.result__a, a.result__url',
        captcha_selector='[id*="captcha"], .anomaly-modal__modal',
        own_domains=("duckduckgo.com",),
    ),
    "bing": SearchEngine(
        name="Bing",
        url_template="https://www.bing.com/search?q={query}",
        results_selector="li.b_algo h2 a",
        captcha_selector="#b_captcha, img#b_captcha",
        own_domains=("bing.com",),
    ),
}


def _ms(seconds: float) -> int:
    return int(seconds * 1_000)


def extract_result_domains(html: str, selector: str, base_url: Optional[str] = None) -> List[str]:
    """
    Extract result hostnames from a search results page.

    Args:
        html: Results page HTML
        selector: CSS selector matching result links
        base_url: Page URL, used for relative links

    Returns:
        Hostnames in page order, without duplicates
    """
    hosts: List[str] = []
    if not html:
        return hosts
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(selector):
        host = hostname_from_href(element.get("href", ""), base_url)
        if host and host not in hosts:
            hosts.append(host)
    return hosts


async def race_selectors(page, selectors: Dict[str, str], timeout_ms: int) -> Optional[str]:
    """
    Wait for whichever selector shows up first.

    Args:
        page: Playwright page
        selectors: label -> CSS selector
        timeout_ms: Per-selector wait in milliseconds

    Returns:
        Label of the first selector found, or None if none appeared in time
    """
    tasks = {
        asyncio.ensure_future(page.wait_for_selector(selector, timeout=timeout_ms)): label
        for label, selector in selectors.items()
    }
    try:
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is None and task.result() is not None:
                    return tasks[task]
        return None
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class SearchFallback:
    """
    Multi-engine browser search with challenge handling.

    Each call to ``search`` owns its own browser session; sessions are never
    shared between concurrent resolutions.
    """

    def __init__(
        self,
        engines: Optional[Iterable[str]] = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        manual_captcha: Optional[bool] = None,
        captcha_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ):
        self.engines: List[SearchEngine] = []
        for name in (config.search_engines if engines is None else engines):
            engine = SEARCH_ENGINES.get(name.lower())
            if engine is None:
                log.warning("Unknown search engine %r ignored", name)
                continue
            self.engines.append(engine)

        self.session_factory = session_factory
        self.manual_captcha = config.manual_captcha if manual_captcha is None else manual_captcha
        self.captcha_timeout = captcha_timeout or config.captcha_timeout
        self.poll_interval = poll_interval or config.captcha_poll_interval
        self.stats = Counter()

    @staticmethod
    def build_query(company: str) -> str:
        return f"{company.strip()} {config.search_query_suffix}".strip()

    def filter_hosts(self, engine: SearchEngine, hosts: Iterable[str]) -> List[str]:
        """
        Drop hosts that cannot be a company site: no public suffix, the
        engine's own pages, or blocked domains.
        """
        kept: List[str] = []
        for host in hosts:
            if not is_public_hostname(host):
                continue
            if registered_domain(host) in engine.own_domains:
                continue
            if config.is_domain_blocked(host):
                log.debug("Blocked search result host %s", host)
                continue
            if host not in kept:
                kept.append(host)
        return kept

    async def wait_for_manual_solve(self, page, engine: SearchEngine) -> None:
        """
        Poll for the results selector until an operator clears the challenge.

        Raises:
            CaptchaTimeoutError: In bounded mode, once captcha_timeout elapses
        """
        loop = asyncio.get_running_loop()
        deadline = None if self.manual_captcha else loop.time() + self.captcha_timeout
        log.warning("%s challenge detected. Please solve it in the browser window...", engine.name)

        while True:
            try:
                await page.wait_for_selector(engine.results_selector, timeout=_ms(self.poll_interval))
                log.info("%s challenge solved. Proceeding...", engine.name)
                return
            except PWTimeout:
                if deadline is not None and loop.time() >= deadline:
                    raise CaptchaTimeoutError(
                        f"{engine.name} challenge not solved within {self.captcha_timeout:.0f}s"
                    )
                log.info("Still waiting for %s challenge to be solved...", engine.name)

    async def _search_engine(self, session: BrowserSession, engine: SearchEngine, query: str) -> List[str]:
        context = await session.new_context()
        try:
            page = await context.new_page()
            await asyncio.sleep(random.uniform(config.min_search_delay, config.max_search_delay))

            url = engine.query_url(query)
            log.info("Searching %s: %s", engine.name, url)
            try:
                await page.goto(url, wait_until="domcontentloaded", timeout=_ms(config.navigation_timeout))
            except PWTimeout:
                log.warning("%s navigation timed out, inspecting what loaded", engine.name)

            state = await race_selectors(
                page,
                {"captcha": engine.captcha_selector, "results": engine.results_selector},
                _ms(config.selector_timeout),
            )
            if state == "captcha":
                self.stats["captcha"] += 1
                await self.wait_for_manual_solve(page, engine)
            elif state is None:
                log.info("%s showed neither results nor a challenge for %r", engine.name, query)

            html = await page.content()
            hosts = self.filter_hosts(engine, extract_result_domains(html, engine.results_selector, page.url))
            log.info("%s returned %d candidate hosts", engine.name, len(hosts))
            return hosts
        finally:
            try:
                await session.close_context(context)
            except Exception as e:
                log.debug("Closing %s context failed: %s", engine.name, e)

    async def _search_engine_isolated(self, session: BrowserSession, engine: SearchEngine, query: str) -> List[str]:
        try:
            return await self._search_engine(session, engine, query)
        except CaptchaTimeoutError as e:
            self.stats["captcha_timeout"] += 1
            log.warning("%s skipped: %s", engine.name, e)
        except Exception as e:
            self.stats["engine_error"] += 1
            log.warning("%s search failed for %r: %s", engine.name, query, e)
        return []

    async def search(self, company: str) -> List[str]:
        """
        Collect candidate hosts for a company from every configured engine.

        Args:
            company: Company name

        Returns:
            Union of all engines' result hosts, de-duplicated, engine order kept.
            Empty when the browser cannot start or every engine fails.
        """
        if not self.engines or not company or not company.strip():
            return []

        query = self.build_query(company)
        self.stats["searches"] += 1
        try:
            # an operator cannot solve a challenge in a headless window
            session = self.session_factory(headless=False) if self.manual_captcha else self.session_factory()
            async with session:
                per_engine = await asyncio.gather(
                    *(self._search_engine_isolated(session, engine, query) for engine in self.engines)
                )
        except BrowserSessionError as e:
            self.stats["browser_error"] += 1
            log.error("Search fallback unavailable for %s: %s", company, e)
            return []

        combined: List[str] = []
        for hosts in per_engine:
            for host in hosts:
                if host not in combined:
                    combined.append(host)
        log.info("Search fallback found %d hosts for %s", len(combined), company)
        return combined
