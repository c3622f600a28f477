"""
Configuration module for the domain resolver.

Settings come from environment variables, optionally loaded from a .env
file. Numeric values are clamped into a sane range instead of failing.
"""

import os
import logging
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv

# Initialize logger
log = logging.getLogger(__name__)

load_dotenv()

DEFAULT_TLDS = (
    ".com,.net,.org,.io,.co,.ai,.us,.uk,.eu,.tech,.dev,.app,.biz,.info,"
    ".me,.ly,.in,.au,.ca,.de,.fr,.jp,.kr,.ua,.pk,.ph"
)
DEFAULT_ENGINES = "duckduckgo,bing"
KNOWN_ENGINES = {"duckduckgo", "bing"}

# Desktop browsers, rotated per request and per browser context
USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_6) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_6) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/18.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
)

Number = Union[int, float]


class ConfigurationError(Exception):
    """Raised when the resolver configuration is unusable."""
    pass


class Config:
    """Resolver settings read from the environment."""

    def __init__(self, env_file: Optional[str] = None):
        """
        Args:
            env_file: Extra .env file whose values override the environment
        """
        if env_file:
            load_dotenv(env_file, override=True)

        # Candidate generation
        self.tlds = self._parse_tlds(os.getenv("DOMAIN_TLDS", DEFAULT_TLDS))

        # Probing and ranking (seconds)
        self.probe_timeout = self._parse_number("PROBE_TIMEOUT", 4.0, 0.5, 60.0)
        self.fetch_timeout = self._parse_number("FETCH_TIMEOUT", 5.0, 0.5, 60.0)
        self.max_redirects = self._parse_number("MAX_REDIRECTS", 2, 0, 20)
        self.probe_concurrency = self._parse_number("PROBE_CONCURRENCY", 16, 1, 256)
        self.insecure_ssl = self._parse_bool("ALLOW_INSECURE_SSL", False)

        # Concurrent company resolutions
        self.max_workers = self._parse_number("MAX_WORKERS", 4, 1, 64)

        # Whole-resolution deadline, 0 disables it
        self.resolve_timeout = self._parse_number("RESOLVE_TIMEOUT", 0.0, 0.0, 86400.0)

        # Search fallback
        self.search_engines = self._parse_list("SEARCH_ENGINES", DEFAULT_ENGINES)
        self.search_query_suffix = os.getenv("SEARCH_QUERY_SUFFIX", "official website").strip()
        self.min_search_delay = self._parse_number("MIN_SEARCH_DELAY", 0.5, 0.0, 60.0)
        self.max_search_delay = self._parse_number("MAX_SEARCH_DELAY", 2.0, 0.0, 60.0)
        self.navigation_timeout = self._parse_number("NAVIGATION_TIMEOUT", 12.0, 1.0, 120.0)
        self.selector_timeout = self._parse_number("SELECTOR_TIMEOUT", 5.0, 0.5, 60.0)

        # Challenge handling
        self.captcha_poll_interval = self._parse_number("CAPTCHA_POLL_INTERVAL", 5.0, 0.5, 60.0)
        self.captcha_timeout = self._parse_number("CAPTCHA_TIMEOUT", 120.0, 1.0, 86400.0)
        self.manual_captcha = self._parse_bool("MANUAL_CAPTCHA", False)
        # an operator needs a visible window to solve challenges
        self.browser_headless = self._parse_bool("BROWSER_HEADLESS", not self.manual_captcha)

        self.user_agents: List[str] = list(USER_AGENTS)

        # Hosts never accepted from search results
        self.blocked_domains = set(self._parse_list("BLOCKED_DOMAINS", ""))

    @staticmethod
    def _parse_tlds(raw: str) -> List[str]:
        """Comma separated TLDs, order kept, leading dot added."""
        tlds: List[str] = []
        for part in raw.split(","):
            tld = part.strip().lower()
            if not tld:
                continue
            if not tld.startswith("."):
                tld = "." + tld
            if tld not in tlds:
                tlds.append(tld)
        return tlds

    @staticmethod
    def _parse_list(env_var: str, default: str) -> List[str]:
        items = [item.strip().lower() for item in os.getenv(env_var, default).split(",")]
        return [item for item in dict.fromkeys(items) if item]

    @staticmethod
    def _parse_number(env_var: str, default: Number, min_val: Number, max_val: Number) -> Number:
        """
        Read a number and clamp it into [min_val, max_val].

        The type of ``default`` decides whether the value is parsed as int or
        float. Unparseable values fall back to the default with a warning.
        """
        cast = type(default)
        raw = os.getenv(env_var)
        if raw is None or not raw.strip():
            return default
        try:
            value = cast(raw.strip())
        except ValueError:
            log.warning("Invalid %s value %r, using default %s", env_var, raw, default)
            return default
        if value < min_val:
            log.warning("%s=%s below minimum, using %s", env_var, value, min_val)
            return min_val
        if value > max_val:
            log.warning("%s=%s above maximum, using %s", env_var, value, max_val)
            return max_val
        return value

    @staticmethod
    def _parse_bool(env_var: str, default: bool) -> bool:
        value = os.getenv(env_var, "").strip()
        if not value:
            return default
        return value.lower() in {"1", "true", "yes", "y", "on"}

    def as_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in vars(self).items() if not k.startswith("_")}

    def validate(self) -> List[str]:
        """
        Check settings that cannot be clamped into shape.

        Returns:
            Error messages, empty if the configuration is usable
        """
        errors = []
        if not self.tlds:
            errors.append("DOMAIN_TLDS must list at least one TLD")
        if not self.search_engines:
            errors.append("SEARCH_ENGINES must list at least one engine")

        unknown = [e for e in self.search_engines if e not in KNOWN_ENGINES]
        if unknown:
            errors.append("Unknown SEARCH_ENGINES: " + ", ".join(unknown))

        if self.min_search_delay > self.max_search_delay:
            errors.append("MIN_SEARCH_DELAY must not exceed MAX_SEARCH_DELAY")
        if not self.user_agents:
            errors.append("At least one user agent is required")
        return errors

    def validate_or_raise(self) -> None:
        """
        Raises:
            ConfigurationError: If validate() reports any problem
        """
        errors = self.validate()
        if errors:
            message = "Configuration errors: " + ", ".join(errors)
            log.error(message)
            raise ConfigurationError(message)

    def is_domain_blocked(self, domain: str) -> bool:
        """True if the host or any parent domain is in BLOCKED_DOMAINS."""
        host = domain.lower().rstrip(".")
        if host.startswith("www."):
            host = host[4:]
        labels = host.split(".")
        return any(".".join(labels[i:]) in self.blocked_domains for i in range(len(labels)))

    def update_from_dict(self, values: Dict[str, Any]) -> None:
        """Overwrite known settings; unknown keys are ignored."""
        for key, value in values.items():
            if hasattr(self, key):
                setattr(self, key, value)


config = Config()
