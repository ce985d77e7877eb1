"""Coarse host classification and discovery of new recipe sites."""

import logging
import threading
import time
from typing import Callable, FrozenSet, Iterable, Optional
from urllib.parse import urlparse

from recipe_lens.app.services.url_parsing.constants import (
    KNOWN_RECIPE_SITES,
    PLATFORM_DOMAINS,
    SOCIAL_DOMAINS,
)
from recipe_lens.app.services.url_parsing.extractors.microdata import has_microdata_recipe
from recipe_lens.app.services.url_parsing.extractors.schema_org import has_structured_recipe
from recipe_lens.app.services.url_parsing.models import DetectionMethod, SiteCategory
from recipe_lens.app.services.url_parsing.versioning import RecipeStore

logger = logging.getLogger(__name__)


def normalize_hostname(url: str) -> Optional[str]:
    """Lowercase host without a leading ``www.``; None for malformed URLs."""
    try:
        parsed = urlparse((url or "").strip())
        host = parsed.hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or None


def _matches_domain(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def is_social_host(host: str) -> bool:
    return any(_matches_domain(host, domain) for domain in SOCIAL_DOMAINS)


class DiscoveredSiteCache:
    """Process-local set of discovered hostnames, reloaded from the store after a TTL.

    Hosts added through :meth:`add` survive reloads, so a site discovered by
    this process is classified correctly right away.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._hosts: set = set()
        self._local: set = set()
        self._loaded_at: Optional[float] = None

    def is_stale(self) -> bool:
        with self._lock:
            return self._loaded_at is None or self._clock() - self._loaded_at >= self._ttl_seconds

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._hosts)

    def replace(self, hostnames: Iterable[str]) -> None:
        loaded = {h.lower() for h in hostnames if h}
        with self._lock:
            self._hosts = loaded | self._local
            self._loaded_at = self._clock()

    def get(self, loader: Callable[[], Iterable[str]]) -> FrozenSet[str]:
        if self.is_stale():
            self.replace(loader())
        return self.snapshot()

    def add(self, hostname: str) -> None:
        host = hostname.lower()
        with self._lock:
            self._local.add(host)
            self._hosts.add(host)

    def invalidate(self) -> None:
        with self._lock:
            self._loaded_at = None


class SiteClassifier:
    def __init__(self, store: RecipeStore, cache: Optional[DiscoveredSiteCache] = None):
        self.store = store
        self.cache = cache or DiscoveredSiteCache()

    def classify(self, url: str) -> SiteCategory:
        host = normalize_hostname(url)
        if not host:
            return SiteCategory.GENERIC

        for domain, category in PLATFORM_DOMAINS.items():
            if _matches_domain(host, domain):
                return SiteCategory(category)

        try:
            path = urlparse(url.strip()).path or ""
        except ValueError:
            path = ""
        target = host + path.lower()
        if any(site in target for site in KNOWN_RECIPE_SITES):
            return SiteCategory.RECIPE_SITE

        discovered = self.cache.snapshot()
        if host in discovered or any(site in host for site in discovered):
            return SiteCategory.RECIPE_SITE
        return SiteCategory.GENERIC

    async def refresh(self) -> None:
        """Reload discovered hosts from the store when the cached copy is stale."""
        if not self.cache.is_stale():
            return
        try:
            hostnames = await self.store.get_discovered_sites()
        except Exception as exc:
            logger.warning("Could not load discovered recipe sites: %s", exc)
            return
        self.cache.replace(hostnames)
        logger.debug("Loaded %d discovered recipe sites", len(hostnames))

    async def discover_if_needed(self, url: str, html: str) -> Optional[DetectionMethod]:
        """Remember a generic host as a recipe site when the page carries recipe markup."""
        host = normalize_hostname(url)
        if not host or is_social_host(host) or self.classify(url) != SiteCategory.GENERIC:
            return None

        if has_structured_recipe(html):
            method = DetectionMethod.STRUCTURED_MARKUP
        elif has_microdata_recipe(html):
            method = DetectionMethod.MICRODATA
        else:
            return None

        try:
            await self.store.upsert_discovered_site(host, method)
        except Exception as exc:
            logger.warning("Failed to save discovered recipe site %s: %s", host, exc)
        self.cache.add(host)
        logger.info("Discovered recipe site %s via %s", host, method.value)
        return method
