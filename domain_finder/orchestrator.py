"""
Resolution orchestrator.

This module runs the two-tier escalation for each company name: guess
domains and rank them, then fall back to live search only when guessing
finds nothing. Every internal failure collapses into a "not found"
outcome; only caller cancellation propagates.
"""

import asyncio
import enum
import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from domain_finder.candidates import company_words, generate_candidates
from domain_finder.config import config
from domain_finder.domain_scorer import DomainScorer
from domain_finder.http import AsyncHttpClient
from domain_finder.search_fallback import SearchFallback

# Initialize logger
log = logging.getLogger(__name__)


class Phase(enum.Enum):
    GUESSING = "guessing"
    SEARCHING = "searching"
    DONE = "done"


@dataclass(frozen=True)
class Resolution:
    """Outcome for one company: a bare hostname or None."""
    name: str
    domain: Optional[str] = None
    source: Optional[str] = None  # "guess" or "search"

    @property
    def found(self) -> bool:
        return self.domain is not None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, "domain": self.domain}


class Orchestrator:
    """Resolves company names to domains, one browser session per fallback."""

    def __init__(
        self,
        http_client: Optional[AsyncHttpClient] = None,
        scorer: Optional[DomainScorer] = None,
        search_fallback: Optional[SearchFallback] = None,
        max_workers: Optional[int] = None,
    ):
        self.http_client = http_client or AsyncHttpClient()
        self.scorer = scorer or DomainScorer(self.http_client)
        self.search_fallback = search_fallback or SearchFallback()
        self.max_workers = max_workers or config.max_workers
        self.global_stats = Counter()

    async def __aenter__(self) -> "Orchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http_client.close()

    def reset_stats(self) -> None:
        self.global_stats.clear()

    async def _resolve(self, company: str) -> Resolution:
        phase = Phase.GUESSING
        if not company_words(company):
            self.global_stats["empty_name"] += 1
            log.info("✗ No usable characters in %r, skipping lookup", company)
            return Resolution(company)

        # may be empty when every form exceeds DNS length limits
        candidates = generate_candidates(company)
        log.debug("%s: %s with %d candidates", company, phase.value, len(candidates))
        domain = await self.scorer.pick_best(company, candidates)
        if domain:
            self.global_stats["guess_found"] += 1
            log.info("✓ Guessed domain for %s: %s", company, domain)
            return Resolution(company, domain, "guess")

        phase = Phase.SEARCHING
        self.global_stats["search_used"] += 1
        log.info("No guess matched for %s, %s", company, phase.value)
        hosts = await self.search_fallback.search(company)
        if hosts:
            domain = await self.scorer.pick_best(company, hosts)
            if domain:
                self.global_stats["search_found"] += 1
                log.info("✓ Found domain via search for %s: %s", company, domain)
                return Resolution(company, domain, "search")

        self.global_stats["not_found"] += 1
        log.info("✗ No domain found for %s", company)
        return Resolution(company)

    async def resolve(self, company: str, timeout: Optional[float] = None) -> Resolution:
        """
        Resolve one company name.

        Args:
            company: Company name, trimmed before use
            timeout: Overall deadline in seconds, defaults to RESOLVE_TIMEOUT
                     (0 or None means no deadline)

        Returns:
            Resolution; domain is None when nothing was found
        """
        name = (company or "").strip()
        self.global_stats["leads"] += 1
        if timeout is None:
            timeout = config.resolve_timeout or None

        start_time = time.monotonic()
        log.info("▶ Resolving company: %s", name)
        try:
            if timeout:
                result = await asyncio.wait_for(self._resolve(name), timeout)
            else:
                result = await self._resolve(name)
        except asyncio.TimeoutError:
            self.global_stats["timeout"] += 1
            if timeout:
                log.warning("Resolution of %s timed out after %ss", name, timeout)
            else:
                log.warning("Resolution of %s hit an unhandled network timeout", name)
            result = Resolution(name)
        except Exception as e:
            self.global_stats["error"] += 1
            log.error("Unexpected error resolving %s: %s", name, e, exc_info=True)
            result = Resolution(name)

        log.debug("Resolved %s in %.2f seconds", name, time.monotonic() - start_time)
        return result

    async def resolve_all(self, companies: Iterable[str], timeout: Optional[float] = None) -> List[Resolution]:
        """
        Resolve many names, up to max_workers at a time.

        Returns:
            One Resolution per input name, in input order
        """
        sem = asyncio.Semaphore(self.max_workers)

        async def bound_resolve(company: str) -> Resolution:
            async with sem:
                return await self.resolve(company, timeout=timeout)

        return list(await asyncio.gather(*(bound_resolve(c) for c in companies)))


async def resolve_domain(company: str, timeout: Optional[float] = None) -> Optional[str]:
    """Resolve a single company name; returns the domain or None."""
    async with Orchestrator() as orchestrator:
        resolution = await orchestrator.resolve(company, timeout=timeout)
    return resolution.domain


async def resolve_domains(companies: Iterable[str], timeout: Optional[float] = None) -> List[Dict[str, Optional[str]]]:
    """Resolve a collection of names into ``{name, domain}`` records."""
    async with Orchestrator() as orchestrator:
        resolutions = await orchestrator.resolve_all(companies, timeout=timeout)
    return [r.as_dict() for r in resolutions]
