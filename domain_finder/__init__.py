"""
Resolve a company's official web domain from its name.
"""

from domain_finder.orchestrator import Orchestrator, Resolution, resolve_domain, resolve_domains

__all__ = ["Orchestrator", "Resolution", "resolve_domain", "resolve_domains"]
