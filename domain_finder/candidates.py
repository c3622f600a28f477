"""
Company name normalisation and domain candidate generation.

Everything here is pure: no I/O, no configuration reads except the
default TLD catalog, so the heuristics can be tested in isolation.
"""

import re
from typing import Iterable, List, Optional

from domain_finder.config import config

CORPORATE_SUFFIXES = ("inc", "llc", "ltd", "gmbh", "co", "corp", "sa", "plc")

MAX_LABEL_LENGTH = 63
MAX_HOSTNAME_LENGTH = 253

_SUFFIX_RE = re.compile(r"\b(?:%s)\b" % "|".join(CORPORATE_SUFFIXES))
_INVALID_CHARS_RE = re.compile(r"[^a-z0-9\s]+")

# Substrings marking list-page noise rather than a company
NON_COMPANY_MARKERS = (
    "portal",
    "economy of",
    "list of",
    "statutory board",
    "government",
    "university",
    "publications",
)


def clean_company_name(company: str) -> str:
    """
    Lowercase a company name, drop corporate suffixes and punctuation.

    "OpenAI, Inc." -> "openai"
    """
    if not company:
        return ""
    cleaned = _SUFFIX_RE.sub("", company.lower())
    cleaned = _INVALID_CHARS_RE.sub("", cleaned)
    return " ".join(cleaned.split())


def company_words(company: str) -> List[str]:
    cleaned = clean_company_name(company)
    return cleaned.split() if cleaned else []


def build_synonyms(company: str) -> List[str]:
    """
    Build the name variants used to spot a company on a web page.

    Args:
        company: Raw company name

    Returns:
        Ordered, de-duplicated variants: spaced, hyphenated and joined forms
        plus the first word for multi-word names. Never empty.
    """
    words = company_words(company)
    if not words:
        return [company.strip().lower()] if company else [""]

    synonyms = [" ".join(words), "-".join(words), "".join(words)]
    if len(words) > 1:
        synonyms.append(words[0])
    return list(dict.fromkeys(synonyms))


def is_valid_hostname(hostname: str) -> bool:
    """DNS length limits: labels of 1-63 characters, 253 characters overall."""
    if not hostname or len(hostname) > MAX_HOSTNAME_LENGTH:
        return False
    return all(0 < len(label) <= MAX_LABEL_LENGTH for label in hostname.split("."))


def generate_candidates(company: str, tlds: Optional[Iterable[str]] = None) -> List[str]:
    """
    Derive plausible domains for a company name.

    Args:
        company: Raw company name
        tlds: TLD catalog, defaults to the configured one

    Returns:
        De-duplicated candidates in TLD-major order, so "<joined>.com" comes
        first. Forms too long for DNS are left out; empty when the name has
        no usable characters.
    """
    words = company_words(company)
    if not words:
        return []

    bases = ["".join(words), "-".join(words)]
    if len(words) > 1:
        bases.append(words[0])

    candidates: List[str] = []
    for tld in (config.tlds if tlds is None else tlds):
        for base in bases:
            hostname = base + tld
            if is_valid_hostname(hostname):
                candidates.append(hostname)
    return list(dict.fromkeys(candidates))


def looks_like_company_name(text: str) -> bool:
    """
    Decide whether a scraped string is plausibly a company name.

    Rejects empty strings, row numbers, single characters and list-page
    boilerplate such as "Economy of France" or "Companies portal".
    """
    text = (text or "").strip()
    if not text:
        return False
    if text.isdigit():
        return False
    if len(text) < 2:
        return False
    lower = text.lower()
    return not any(marker in lower for marker in NON_COMPANY_MARKERS)
