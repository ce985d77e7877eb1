"""Parser configs per site category and the learning store that records outcomes."""

import asyncio
import logging
import re
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Awaitable, Dict, List, Optional, Protocol, Tuple, Union

from recipe_lens.app.core.config import Settings, get_settings
from recipe_lens.app.services.url_parsing.models import (
    ConfidenceScore,
    DetectionMethod,
    ImportAttempt,
    ParserConfig,
    ParserStats,
    ParserVersion,
    PatternStat,
    SiteCategory,
    StrategyName,
)
from recipe_lens.app.services.url_parsing.parsing_utils import INGREDIENTS_WORD_RE

logger = logging.getLogger(__name__)

S = StrategyName

_SITE_STRATEGIES = [
    S.STRUCTURED_MARKUP,
    S.MICRODATA,
    S.SITE_EXTRAS,
    S.JSONLD_CAPTION,
    S.META_DESCRIPTION,
    S.HEADING_BLOCK,
]

DEFAULT_CONFIGS: Dict[SiteCategory, List[ParserConfig]] = {
    SiteCategory.TIKTOK: [
        ParserConfig(
            site_category=SiteCategory.TIKTOK,
            version=ParserVersion.V1,
            strategies=[
                S.STRUCTURED_MARKUP,
                S.MICRODATA,
                S.PLATFORM_STATE,
                S.PLATFORM_DOM,
                S.REMOTE_METADATA,
                S.JSONLD_CAPTION,
                S.META_DESCRIPTION,
                S.HEADING_BLOCK,
                S.CLIENT_RENDER,
            ],
            rollout_percentage=100,
            enabled=True,
        ),
        ParserConfig(
            site_category=SiteCategory.TIKTOK,
            version=ParserVersion.V2,
            strategies=[
                S.PLATFORM_STATE,
                S.STRUCTURED_MARKUP,
                S.REMOTE_METADATA,
                S.META_DESCRIPTION,
                S.CLIENT_RENDER,
            ],
            rollout_percentage=0,
            enabled=False,
        ),
    ],
    SiteCategory.INSTAGRAM: [
        ParserConfig(
            site_category=SiteCategory.INSTAGRAM,
            version=ParserVersion.V1,
            strategies=[
                S.STRUCTURED_MARKUP,
                S.MICRODATA,
                S.PLATFORM_STATE,
                S.PLATFORM_DOM,
                S.JSONLD_CAPTION,
                S.META_DESCRIPTION,
                S.HEADING_BLOCK,
                S.CLIENT_RENDER,
            ],
            rollout_percentage=100,
            enabled=True,
        ),
        ParserConfig(
            site_category=SiteCategory.INSTAGRAM,
            version=ParserVersion.V2,
            strategies=[S.META_DESCRIPTION, S.STRUCTURED_MARKUP, S.PLATFORM_DOM, S.CLIENT_RENDER],
            rollout_percentage=0,
            enabled=False,
        ),
    ],
    SiteCategory.FACEBOOK: [
        ParserConfig(
            site_category=SiteCategory.FACEBOOK,
            version=ParserVersion.V1,
            strategies=[
                S.STRUCTURED_MARKUP,
                S.MICRODATA,
                S.JSONLD_CAPTION,
                S.META_DESCRIPTION,
                S.HEADING_BLOCK,
                S.CLIENT_RENDER,
            ],
            rollout_percentage=100,
            enabled=True,
        ),
    ],
    SiteCategory.RECIPE_SITE: [
        ParserConfig(
            site_category=SiteCategory.RECIPE_SITE,
            version=ParserVersion.V1,
            strategies=list(_SITE_STRATEGIES),
            rollout_percentage=100,
            enabled=True,
        ),
    ],
    SiteCategory.GENERIC: [
        ParserConfig(
            site_category=SiteCategory.GENERIC,
            version=ParserVersion.V1,
            strategies=list(_SITE_STRATEGIES),
            rollout_percentage=100,
            enabled=True,
        ),
    ],
}

CONFIDENCE_POINTS = {
    ConfidenceScore.LOW: 1,
    ConfidenceScore.MEDIUM: 2,
    ConfidenceScore.HIGH: 3,
}

MIN_PATTERN_HTML = 100
STEPS_WORD_RE = re.compile(r"\b(directions|instructions|steps|method)\b", re.I)
RECIPE_WORD_RE = re.compile(r"\brecipe\b", re.I)


def config_for(
    category: SiteCategory,
    configs: Optional[Dict[SiteCategory, List[ParserConfig]]] = None,
    version_override: Union[ParserVersion, str, None] = None,
) -> ParserConfig:
    """Pick the config to run for a category.

    An explicit version override wins when that version exists. Otherwise the
    enabled config with the highest rollout is used, then ``v1``, then the
    first config listed.
    """
    table = configs if configs is not None else DEFAULT_CONFIGS
    options = table.get(category) or table.get(SiteCategory.GENERIC) or DEFAULT_CONFIGS[SiteCategory.GENERIC]

    if version_override:
        wanted = getattr(version_override, "value", version_override)
        for config in options:
            if config.version.value == wanted:
                return config
        logger.warning("Parser version %s not configured for %s; using default", wanted, category.value)

    enabled = [c for c in options if c.enabled]
    if enabled:
        return max(enabled, key=lambda c: c.rollout_percentage)
    for config in options:
        if config.version == ParserVersion.V1:
            return config
    return options[0]


def html_pattern(html: str, category: SiteCategory) -> str:
    """Short structural fingerprint of a page, used as the learning key."""
    if len(html or "") < MIN_PATTERN_HTML:
        return "too-short"
    lowered = html.lower()
    markers: List[str] = []
    if "application/ld+json" in lowered:
        markers.append("has-jsonld")
    if "itemtype" in lowered and "schema.org/recipe" in lowered:
        markers.append("has-microdata")
    if category == SiteCategory.TIKTOK:
        if "SIGI_STATE" in html:
            markers.append("has-sigi")
        if "ItemModule" in html:
            markers.append("has-item-module")
        if "__UNIVERSAL_DATA_FOR_REHYDRATION__" in html:
            markers.append("has-universal-data")
    if category == SiteCategory.INSTAGRAM:
        if "_sharedData" in html:
            markers.append("has-shared-data")
        if "edge_media_to_caption" in html:
            markers.append("has-edge-media")
    if INGREDIENTS_WORD_RE.search(html):
        markers.append("mentions-ingredients")
    if STEPS_WORD_RE.search(html):
        markers.append("mentions-steps")
    if RECIPE_WORD_RE.search(html):
        markers.append("has-recipe-keyword")
    return "|".join(markers) or "generic"


class RecipeStore(Protocol):
    async def get_discovered_sites(self) -> List[str]:
        ...

    async def upsert_discovered_site(self, hostname: str, method: DetectionMethod) -> None:
        ...

    async def append_import_attempt(self, attempt: ImportAttempt) -> None:
        ...

    async def upsert_extraction_pattern(
        self,
        category: SiteCategory,
        pattern: str,
        method: StrategyName,
        version: ParserVersion,
        success: bool,
    ) -> None:
        ...

    async def query_best_pattern(self, category: SiteCategory, pattern: str) -> Optional[PatternStat]:
        ...

    async def list_import_attempts(
        self, category: SiteCategory, version: ParserVersion, since: datetime
    ) -> List[ImportAttempt]:
        ...


class InMemoryRecipeStore:
    """Process-local store for tests and for running without a database."""

    def __init__(self) -> None:
        self.discovered: Dict[str, DetectionMethod] = {}
        self.attempts: List[ImportAttempt] = []
        # (category, pattern, method, version) -> [success_count, total_count, last_attempt_at]
        self.patterns: Dict[Tuple[str, str, str, str], list] = {}

    async def get_discovered_sites(self) -> List[str]:
        return list(self.discovered)

    async def upsert_discovered_site(self, hostname: str, method: DetectionMethod) -> None:
        self.discovered[hostname] = method

    async def append_import_attempt(self, attempt: ImportAttempt) -> None:
        self.attempts.append(attempt)

    async def upsert_extraction_pattern(
        self,
        category: SiteCategory,
        pattern: str,
        method: StrategyName,
        version: ParserVersion,
        success: bool,
    ) -> None:
        key = (category.value, pattern, method.value, version.value)
        counts = self.patterns.setdefault(key, [0, 0, None])
        counts[0] += 1 if success else 0
        counts[1] += 1
        counts[2] = datetime.utcnow()

    async def query_best_pattern(self, category: SiteCategory, pattern: str) -> Optional[PatternStat]:
        best: Optional[PatternStat] = None
        for (cat, pat, method, _version), (successes, total, seen_at) in self.patterns.items():
            if cat != category.value or pat != pattern or not total:
                continue
            stat = PatternStat(
                method=StrategyName(method),
                success_rate=successes * 100.0 / total,
                total_attempts=total,
                last_attempt_at=seen_at,
            )
            if best is None or (stat.success_rate, stat.total_attempts) > (best.success_rate, best.total_attempts):
                best = stat
        return best

    async def list_import_attempts(
        self, category: SiteCategory, version: ParserVersion, since: datetime
    ) -> List[ImportAttempt]:
        return [
            a
            for a in self.attempts
            if a.site_category == category and a.parser_version == version and a.created_at >= since
        ]


class LearningStore:
    """Records extraction outcomes in the background and answers questions about them.

    Writes are scheduled with ``asyncio.create_task`` and never awaited by the
    caller; pending tasks are kept referenced until they finish, and
    :meth:`drain` waits for them (tests, shutdown). Store failures are logged
    and dropped.
    """

    def __init__(self, store: RecipeStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self._pending: set = set()

    def spawn(self, coro: Awaitable, label: str) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; dropping %s", label)
            coro.close()
            return None
        task = loop.create_task(self._guard(coro, label))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _guard(self, coro: Awaitable, label: str) -> None:
        try:
            await coro
        except Exception as exc:
            logger.warning("%s failed: %s", label, exc)

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def log_attempt(self, attempt: ImportAttempt) -> Optional[asyncio.Task]:
        if not self.settings.attempt_logging_enabled:
            return None
        if attempt.raw_html_sample:
            attempt = attempt.model_copy(
                update={"raw_html_sample": attempt.raw_html_sample[: self.settings.raw_html_sample_chars]}
            )
        return self.spawn(self.store.append_import_attempt(attempt), "Import attempt logging")

    def update_pattern(
        self,
        category: SiteCategory,
        pattern: str,
        method: StrategyName,
        version: ParserVersion,
        success: bool,
    ) -> Optional[asyncio.Task]:
        return self.spawn(
            self.store.upsert_extraction_pattern(category, pattern, method, version, success),
            "Extraction pattern update",
        )

    async def best_known_strategy(self, category: SiteCategory, pattern: str) -> Optional[StrategyName]:
        """The strategy that has worked for this page shape, when the evidence is good enough."""
        try:
            stat = await self.store.query_best_pattern(category, pattern)
        except Exception as exc:
            logger.warning("Best strategy lookup failed for %s/%s: %s", category.value, pattern, exc)
            return None
        if stat is None:
            return None
        if stat.success_rate < self.settings.pattern_success_threshold:
            return None
        if stat.total_attempts < self.settings.pattern_min_attempts:
            return None
        stale_days = self.settings.pattern_stale_days
        if stale_days is not None and stat.last_attempt_at is not None:
            if datetime.utcnow() - stat.last_attempt_at > timedelta(days=stale_days):
                return None
        return stat.method

    async def parser_stats(self, category: SiteCategory, version: ParserVersion, days: int = 7) -> ParserStats:
        since = datetime.utcnow() - timedelta(days=days)
        attempts = await self.store.list_import_attempts(category, version, since)

        counts: Dict[str, int] = defaultdict(int)
        confidence_points: List[int] = []
        for attempt in attempts:
            if attempt.strategy_used == StrategyName.USER_CORRECTED:
                counts["corrections"] += 1
                continue
            counts["total"] += 1
            if attempt.success:
                counts["success"] += 1
            if attempt.confidence_score is not None:
                confidence_points.append(CONFIDENCE_POINTS[attempt.confidence_score])

        total = counts["total"]
        stats = ParserStats(site_category=category, version=version, total_attempts=total)
        if not total:
            return stats
        stats.success_rate = round(counts["success"] * 100.0 / total, 2)
        stats.user_correction_rate = round(counts["corrections"] * 100.0 / total, 2)
        if confidence_points:
            average = sum(confidence_points) / len(confidence_points)
            if average >= 2.5:
                stats.average_confidence = ConfidenceScore.HIGH
            elif average >= 1.5:
                stats.average_confidence = ConfidenceScore.MEDIUM
        return stats

    def track_user_correction(
        self,
        url: str,
        category: SiteCategory,
        version: ParserVersion,
        user_id: Optional[str] = None,
    ) -> Optional[asyncio.Task]:
        return self.log_attempt(
            ImportAttempt(
                url=url,
                site_category=category,
                parser_version=version,
                strategy_used=StrategyName.USER_CORRECTED,
                success=False,
                user_id=user_id,
            )
        )
