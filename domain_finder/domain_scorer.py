"""
Content-based domain ranking.

This module scores reachable candidate domains by looking for the company's
name variants on their homepage and picks the best candidate of a batch.
"""

import asyncio
import logging
from typing import Iterable, List, NamedTuple, Optional, Sequence

from bs4 import BeautifulSoup

from domain_finder.candidates import build_synonyms
from domain_finder.http import AsyncHttpClient

# Initialize logger
log = logging.getLogger(__name__)

UNREACHABLE = -1


class RankedResult(NamedTuple):
    domain: str
    score: int

    @property
    def valid(self) -> bool:
        return self.score >= 0


class DomainScorer:
    """Ranks candidate domains by reachability and on-page name matches."""

    # a live domain with an unreadable homepage still beats a dead one
    base_score = 1
    body_match_points = 2
    # title mentions are stronger evidence than body mentions
    title_match_points = 5

    def __init__(self, http_client: AsyncHttpClient):
        self.http_client = http_client

    def score_page(self, html: str, synonyms: Sequence[str]) -> int:
        """
        Score homepage HTML against name variants.

        Args:
            html: Raw homepage body
            synonyms: Lowercase name variants

        Returns:
            Points earned on top of the base score
        """
        if not html:
            return 0

        text = html.lower()
        soup = BeautifulSoup(html, "html.parser")
        title = soup.title.get_text(" ", strip=True).lower() if soup.title else ""

        points = 0
        for syn in synonyms:
            if not syn:
                continue
            if syn in text:
                points += self.body_match_points
            if syn in title:
                points += self.title_match_points
        return points

    async def rank(self, domain: str, company: str, synonyms: Optional[Sequence[str]] = None) -> RankedResult:
        """
        Probe a candidate and score its homepage.

        Returns:
            RankedResult with score -1 for unreachable domains, otherwise >= 1
        """
        probe = await self.http_client.probe(domain)
        if not probe.reachable:
            return RankedResult(domain, UNREACHABLE)

        if synonyms is None:
            synonyms = build_synonyms(company)

        score = self.base_score
        html = await self.http_client.fetch_text(probe.url)
        if html:
            try:
                score += self.score_page(html, synonyms)
            except Exception as e:
                log.debug("Could not score homepage of %s: %s", domain, e)

        log.debug("Rank for %s (%s): %d", domain, company, score)
        return RankedResult(domain, score)

    async def rank_all(self, company: str, domains: Iterable[str]) -> List[RankedResult]:
        """
        Rank every candidate concurrently, in input order, duplicates removed.
        """
        unique = list(dict.fromkeys(domains))
        if not unique:
            return []
        synonyms = build_synonyms(company)
        outcomes = await asyncio.gather(
            *(self.rank(d, company, synonyms) for d in unique), return_exceptions=True
        )

        results: List[RankedResult] = []
        for domain, outcome in zip(unique, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                # one broken candidate must not sink the batch
                log.debug("Ranking %s failed: %r", domain, outcome)
                results.append(RankedResult(domain, UNREACHABLE))
            else:
                results.append(outcome)
        return results

    @staticmethod
    def select_best(results: Iterable[RankedResult]) -> Optional[RankedResult]:
        """
        Highest scoring valid result; ties go to the earliest one.
        """
        valid = [r for r in results if r.valid]
        if not valid:
            return None
        # sort is stable, so equal scores keep input order
        valid.sort(key=lambda r: r.score, reverse=True)
        return valid[0]

    async def pick_best(self, company: str, domains: Iterable[str]) -> Optional[str]:
        """
        Find the best matching domain among candidates.

        Args:
            company: Company name to match
            domains: Candidate hostnames

        Returns:
            Winning domain, or None when no candidate is reachable
        """
        results = await self.rank_all(company, domains)
        best = self.select_best(results)
        if best is None:
            log.debug("No reachable candidate among %d for %s", len(results), company)
            return None

        log.info("Best domain for %s: %s (score: %d, %d candidates)",
                 company, best.domain, best.score, len(results))
        return best.domain
