"""
Async HTTP client for reachability probes and homepage fetches
==============================================================

* Every request carries an explicit ``aiohttp.ClientTimeout``.
* Outbound requests share one semaphore so a large candidate batch cannot
  open more than ``PROBE_CONCURRENCY`` connections at once.
* Network failures never propagate: probes answer ``False`` and fetches
  answer ``None``.

Also hosts the URL/hostname helpers used by the search fallback.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import random
import re
from collections import Counter
from typing import Any, Dict, NamedTuple, Optional
from urllib.parse import parse_qs, urljoin, urlparse

import aiohttp
import tldextract

from domain_finder.config import config

log = logging.getLogger(__name__)

MAX_URL_LENGTH = 2000

# bundled public suffix snapshot, no download at runtime
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def validate_url(url: str) -> bool:
    if not url or len(url) > MAX_URL_LENGTH:
        return False
    try:
        p = urlparse(url)
        if p.scheme not in {"http", "https"} or not p.netloc:
            return False
        if re.search(r"^(file|data|javascript):", url, re.I):
            return False
        return True
    except ValueError:
        return False

def unwrap_redirect(href: str) -> str:
    """
    Return the target of a search engine click-tracking link.

    DuckDuckGo wraps results as ``/l/?uddg=<quoted url>`` and Bing as
    ``/ck/a?...&u=a1<base64url>``; anything else is returned unchanged.
    """
    try:
        parsed = urlparse(href)
    except ValueError:
        return href
    host = (parsed.hostname or "").lower()
    params = parse_qs(parsed.query)

    if host.endswith("duckduckgo.com") and parsed.path.startswith("/l/") and "uddg" in params:
        return params["uddg"][0]

    if host.endswith("bing.com") and parsed.path.startswith("/ck/") and "u" in params:
        token = params["u"][0]
        if token.startswith("a1"):
            token = token[2:]
            try:
                padded = token + "=" * (-len(token) % 4)
                return base64.urlsafe_b64decode(padded).decode("utf-8")
            except (ValueError, UnicodeDecodeError):
                log.debug("Undecodable Bing redirect token in %s", href)
    return href

def hostname_from_href(href: str, base: Optional[str] = None) -> Optional[str]:
    """
    Strip a result link down to its lowercase hostname.

    Args:
        href: Raw href attribute
        base: Page URL used to resolve relative links

    Returns:
        Hostname, or None for relative/non-http links
    """
    if not href:
        return None
    href = href.strip()
    if href.startswith("//"):
        href = "https:" + href
    elif base and not href.startswith(("http://", "https://")):
        href = urljoin(base, href)
    href = unwrap_redirect(href)
    if not validate_url(href):
        return None
    try:
        host = urlparse(href).hostname
    except ValueError:
        return None
    return host.lower().rstrip(".") if host else None

def is_public_hostname(host: str) -> bool:
    """True when the host ends in a known public suffix (rejects IPs, localhost)."""
    ext = _tld_extract(host)
    return bool(ext.domain and ext.suffix)

def registered_domain(host: str) -> str:
    ext = _tld_extract(host)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return host.lower()


class ProbeResult(NamedTuple):
    reachable: bool
    url: Optional[str] = None


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class AsyncHttpClient:
    """Shared aiohttp session with a bounded number of in-flight requests."""

    def __init__(
        self,
        concurrency: Optional[int] = None,
        probe_timeout: Optional[float] = None,
        fetch_timeout: Optional[float] = None,
        session: Optional[Any] = None,
    ) -> None:
        self._sem = asyncio.Semaphore(concurrency or config.probe_concurrency)
        self.probe_timeout = probe_timeout or config.probe_timeout
        self.fetch_timeout = fetch_timeout or config.fetch_timeout
        self._session = session
        self._owns_session = session is None
        self.stats = Counter()

    async def __aenter__(self) -> "AsyncHttpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self):
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _request_kwargs(self, total_timeout: float) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "timeout": aiohttp.ClientTimeout(total=total_timeout),
            "headers": {"User-Agent": random.choice(config.user_agents)},
            "allow_redirects": config.max_redirects > 0,
        }
        if config.max_redirects > 0:
            kwargs["max_redirects"] = config.max_redirects
        if config.insecure_ssl:
            kwargs["ssl"] = False
        return kwargs

    async def is_reachable(self, url: str) -> bool:
        """
        Send one HEAD request; a 2xx or 3xx answer means the host is alive.
        """
        if not validate_url(url):
            self.stats["skipped_urls"] += 1
            return False

        session = self._get_session()
        async with self._sem:
            self.stats["probe_requests"] += 1
            try:
                async with session.head(url, **self._request_kwargs(self.probe_timeout)) as resp:
                    status = resp.status
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as exc:
                log.debug("HEAD %s failed: %s", url, exc or type(exc).__name__)
                self.stats["probe_errors"] += 1
                return False

        log.debug("HEAD %s -> %s", url, status)
        self.stats[f"status_{status}"] += 1
        return 200 <= status < 400

    async def probe(self, domain: str) -> ProbeResult:
        """
        Check whether a web server answers for a bare domain.

        Tries http:// first and https:// once if that fails.
        """
        for scheme in ("http", "https"):
            url = f"{scheme}://{domain}"
            if await self.is_reachable(url):
                return ProbeResult(True, url)
        return ProbeResult(False, None)

    async def fetch_text(self, url: str, timeout: Optional[float] = None) -> Optional[str]:
        """
        GET a page body.

        Returns:
            Decoded body for a 200 response, None on any other status or error
        """
        if not validate_url(url):
            self.stats["skipped_urls"] += 1
            return None

        session = self._get_session()
        async with self._sem:
            self.stats["fetch_requests"] += 1
            try:
                async with session.get(url, **self._request_kwargs(timeout or self.fetch_timeout)) as resp:
                    if resp.status != 200:
                        log.debug("GET %s -> %s, not scoring body", url, resp.status)
                        return None
                    return await resp.text(errors="replace")
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as exc:
                log.debug("GET %s failed: %s", url, exc or type(exc).__name__)
                self.stats["fetch_errors"] += 1
                return None
