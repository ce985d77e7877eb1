"""Runs the configured extraction strategies for a URL and finalizes the result."""

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Union

from bs4 import BeautifulSoup

from recipe_lens.app.core.config import Settings, get_settings
from recipe_lens.app.services.url_parsing import confidence
from recipe_lens.app.services.url_parsing.extractors import (
    extract_meta_image,
    extract_recipe_from_json_ld_caption,
    extract_recipe_from_meta_description,
    extract_recipe_from_microdata,
    extract_recipe_from_platform_dom,
    extract_recipe_from_platform_state,
    extract_recipe_from_remote_metadata,
    extract_recipe_from_schema_org,
    extract_recipe_from_site_rules,
    extract_recipe_from_visible_text,
)
from recipe_lens.app.services.url_parsing.html_fetcher import fetch_document, validate_url
from recipe_lens.app.services.url_parsing.ingredient_normalizer import normalize_ingredient_lines
from recipe_lens.app.services.url_parsing.models import (
    ConfidenceScore,
    ImportAttempt,
    ParserConfig,
    PartialRecipe,
    RecipeMeta,
    SiteCategory,
    StrategyName,
)
from recipe_lens.app.services.url_parsing.parsing_utils import clean_text
from recipe_lens.app.services.url_parsing.site_classifier import (
    DiscoveredSiteCache,
    SiteClassifier,
    normalize_hostname,
)
from recipe_lens.app.services.url_parsing.title_resolver import clean_title, resolve_title
from recipe_lens.app.services.url_parsing.versioning import (
    InMemoryRecipeStore,
    LearningStore,
    RecipeStore,
    config_for,
    html_pattern,
)

logger = logging.getLogger(__name__)

StageResult = Union[Optional[PartialRecipe], Awaitable[Optional[PartialRecipe]]]


@dataclass
class ExtractionContext:
    url: str
    html: str
    category: SiteCategory
    hostname: Optional[str]
    settings: Settings


@dataclass(frozen=True)
class Stage:
    name: StrategyName
    run: Callable[[ExtractionContext], StageResult]
    accepts: Callable[[Optional[PartialRecipe]], bool]
    trusts_title: bool = False
    platform_only: bool = False


def _remote_metadata(ctx: ExtractionContext) -> Awaitable[Optional[PartialRecipe]]:
    return extract_recipe_from_remote_metadata(
        ctx.url, ctx.category, timeout=ctx.settings.remote_metadata_timeout_seconds
    )


STAGES: Dict[StrategyName, Stage] = {
    stage.name: stage
    for stage in (
        Stage(
            StrategyName.STRUCTURED_MARKUP,
            lambda ctx: extract_recipe_from_schema_org(ctx.html, ctx.url),
            confidence.accepts_recipe_structure,
            trusts_title=True,
        ),
        Stage(
            StrategyName.MICRODATA,
            lambda ctx: extract_recipe_from_microdata(ctx.html, ctx.url),
            confidence.accepts_recipe_structure,
            trusts_title=True,
        ),
        Stage(
            StrategyName.SITE_EXTRAS,
            lambda ctx: extract_recipe_from_site_rules(ctx.html, ctx.url, ctx.hostname),
            confidence.accepts_recipe_structure,
            trusts_title=True,
        ),
        Stage(
            StrategyName.PLATFORM_STATE,
            lambda ctx: extract_recipe_from_platform_state(ctx.html, ctx.url, ctx.category),
            confidence.accepts_caption,
            platform_only=True,
        ),
        Stage(
            StrategyName.PLATFORM_DOM,
            lambda ctx: extract_recipe_from_platform_dom(ctx.html, ctx.url, ctx.category),
            confidence.accepts_caption,
            platform_only=True,
        ),
        Stage(
            StrategyName.REMOTE_METADATA,
            _remote_metadata,
            confidence.accepts_caption,
            platform_only=True,
        ),
        Stage(
            StrategyName.JSONLD_CAPTION,
            lambda ctx: extract_recipe_from_json_ld_caption(ctx.html, ctx.url),
            confidence.accepts_caption,
        ),
        Stage(
            StrategyName.META_DESCRIPTION,
            lambda ctx: extract_recipe_from_meta_description(ctx.html, ctx.url),
            confidence.accepts_caption,
        ),
        Stage(
            StrategyName.HEADING_BLOCK,
            lambda ctx: extract_recipe_from_visible_text(ctx.html, ctx.url),
            confidence.accepts_hard_ingredients,
        ),
    )
}

FALLBACK_STAGE = Stage(StrategyName.FALLBACK, lambda ctx: PartialRecipe(), lambda candidate: True)

STRUCTURED_STRATEGIES = {StrategyName.STRUCTURED_MARKUP, StrategyName.MICRODATA, StrategyName.SITE_EXTRAS}


def confidence_for(strategy: StrategyName, ingredients: List[str]) -> ConfidenceScore:
    if strategy == StrategyName.FALLBACK:
        return ConfidenceScore.LOW
    if strategy in STRUCTURED_STRATEGIES or len(ingredients) >= 3:
        return ConfidenceScore.HIGH
    return ConfidenceScore.MEDIUM


def reorder_strategies(strategies: List[StrategyName], suggested: Optional[StrategyName]) -> List[StrategyName]:
    """Move a known-good strategy to the front when the config runs it at all."""
    ordered = list(strategies)
    if suggested is not None and suggested in ordered:
        ordered.remove(suggested)
        ordered.insert(0, suggested)
    return ordered


class RecipeExtractor:
    def __init__(
        self,
        store: Optional[RecipeStore] = None,
        settings: Optional[Settings] = None,
        classifier: Optional[SiteClassifier] = None,
        learning: Optional[LearningStore] = None,
        configs: Optional[Dict[SiteCategory, List[ParserConfig]]] = None,
        fetcher: Optional[Callable[[str, SiteCategory], Awaitable[str]]] = None,
    ):
        self.settings = settings or get_settings()
        store = store if store is not None else InMemoryRecipeStore()
        self.learning = learning or LearningStore(store, self.settings)
        self.classifier = classifier or SiteClassifier(
            store, DiscoveredSiteCache(ttl_seconds=self.settings.discovered_site_cache_ttl_seconds)
        )
        self.configs = configs
        self._fetcher = fetcher

    async def extract(self, url: str) -> RecipeMeta:
        """Extract a normalized recipe from ``url``; only an invalid URL raises."""
        url = validate_url(url)
        await self.classifier.refresh()
        category = self.classifier.classify(url)
        config = config_for(category, self.configs, self.settings.parser_version_override)

        fetcher = self._fetcher or fetch_document
        html = await fetcher(url, category)
        pattern = html_pattern(html, category)
        suggested = await self.learning.best_known_strategy(category, pattern)
        strategies = reorder_strategies(config.strategies, suggested)
        logger.info(
            "Extracting %s: category=%s, version=%s, pattern=%s, html=%d chars, suggested=%s",
            url,
            category.value,
            config.version.value,
            pattern,
            len(html),
            suggested.value if suggested else None,
        )

        ctx = ExtractionContext(
            url=url,
            html=html,
            category=category,
            hostname=normalize_hostname(url),
            settings=self.settings,
        )
        chosen = FALLBACK_STAGE
        candidate: Optional[PartialRecipe] = None
        needs_client_render: Optional[bool] = None
        for name in strategies:
            if name == StrategyName.CLIENT_RENDER:
                needs_client_render = True
                continue
            stage = STAGES.get(name)
            if stage is None:
                logger.warning("No stage registered for strategy %s", name.value)
                continue
            if stage.platform_only and not category.is_platform:
                continue
            result = await self._run_stage(stage, ctx)
            if stage.accepts(result):
                chosen, candidate = stage, result
                break
            logger.debug("Stage %s produced no accepted candidate for %s", name.value, url)

        meta = self._finalize(ctx, chosen, candidate or PartialRecipe(), needs_client_render)
        self._record(ctx, config, pattern, meta)
        return meta

    async def _run_stage(self, stage: Stage, ctx: ExtractionContext) -> Optional[PartialRecipe]:
        try:
            result = stage.run(ctx)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception:
            logger.exception("Stage %s failed for %s", stage.name.value, ctx.url)
            return None

    def _finalize(
        self,
        ctx: ExtractionContext,
        stage: Stage,
        partial: PartialRecipe,
        needs_client_render: Optional[bool],
    ) -> RecipeMeta:
        soup = BeautifulSoup(ctx.html or "", "lxml")
        ingredients = normalize_ingredient_lines(partial.ingredients)
        steps = [clean_text(step) for step in partial.steps]
        steps = [step for step in steps if step]

        title = None
        if stage.trusts_title and partial.title:
            title = clean_title(partial.title, strip_credits=False)
        if not title:
            title = resolve_title(ctx.html, ctx.url)

        if stage.trusts_title and partial.image:
            image = partial.image
        else:
            image = extract_meta_image(soup) or partial.image

        logger.info(
            "Extracted %s via %s: ingredients=%d, steps=%d, title=%s",
            ctx.url,
            stage.name.value,
            len(ingredients),
            len(steps),
            bool(title),
        )
        return RecipeMeta(
            url=ctx.url,
            title=title,
            image=image,
            ingredients=ingredients,
            steps=steps,
            needs_client_render=needs_client_render,
            strategy=stage.name,
            site_category=ctx.category,
        )

    def _record(self, ctx: ExtractionContext, config: ParserConfig, pattern: str, meta: RecipeMeta) -> None:
        """Schedule discovery, attempt logging and the pattern update without awaiting them."""
        success = bool(meta.ingredients or meta.steps)
        self.learning.spawn(self.classifier.discover_if_needed(ctx.url, ctx.html), "Site discovery")
        self.learning.log_attempt(
            ImportAttempt(
                url=ctx.url,
                site_category=ctx.category,
                parser_version=config.version,
                strategy_used=meta.strategy,
                success=success,
                confidence_score=confidence_for(meta.strategy, meta.ingredients),
                ingredients_count=len(meta.ingredients),
                steps_count=len(meta.steps),
                html_pattern=pattern,
                raw_html_sample=None if success else ctx.html,
            )
        )
        if meta.strategy != StrategyName.FALLBACK:
            self.learning.update_pattern(ctx.category, pattern, meta.strategy, config.version, success)


_default_extractor: Optional[RecipeExtractor] = None


def get_default_extractor() -> RecipeExtractor:
    """Process-wide extractor backed by the configured database."""
    global _default_extractor
    if _default_extractor is None:
        from recipe_lens.app.db.session import SessionLocal
        from recipe_lens.app.services.recipe_store import SqlRecipeStore

        _default_extractor = RecipeExtractor(store=SqlRecipeStore(SessionLocal))
    return _default_extractor


async def extract_recipe(url: str) -> RecipeMeta:
    return await get_default_extractor().extract(url)
