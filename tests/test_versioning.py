import asyncio
import time
from datetime import datetime, timedelta

import pytest

from recipe_lens.app.services.recipe_store import SqlRecipeStore
from recipe_lens.app.services.url_parsing.models import (
    ConfidenceScore,
    DetectionMethod,
    ImportAttempt,
    ParserConfig,
    ParserVersion,
    SiteCategory,
    StrategyName,
)
from recipe_lens.app.services.url_parsing.versioning import (
    InMemoryRecipeStore,
    LearningStore,
    config_for,
    html_pattern,
)

PADDING = " " * 120


@pytest.fixture
def learning_settings(settings):
    return settings.model_copy(
        update={
            "pattern_success_threshold": 50.0,
            "pattern_min_attempts": 1,
            "pattern_stale_days": None,
            "raw_html_sample_chars": 10,
            "attempt_logging_enabled": True,
        }
    )


def _attempt(**overrides) -> ImportAttempt:
    values = dict(
        url="https://example.com/r",
        site_category=SiteCategory.GENERIC,
        parser_version=ParserVersion.V1,
        strategy_used=StrategyName.HEADING_BLOCK,
        success=True,
        confidence_score=ConfidenceScore.HIGH,
    )
    values.update(overrides)
    return ImportAttempt(**values)


class BrokenStore(InMemoryRecipeStore):
    async def append_import_attempt(self, attempt):
        raise RuntimeError("disk full")

    async def query_best_pattern(self, category, pattern):
        raise RuntimeError("disk full")


def test_config_for_defaults_and_override():
    assert config_for(SiteCategory.TIKTOK).version == ParserVersion.V1
    assert config_for(SiteCategory.TIKTOK, version_override="v2").version == ParserVersion.V2
    assert config_for(SiteCategory.TIKTOK, version_override=ParserVersion.V3).version == ParserVersion.V1
    assert StrategyName.CLIENT_RENDER in config_for(SiteCategory.INSTAGRAM).strategies
    assert config_for(SiteCategory.RECIPE_SITE).strategies[0] == StrategyName.STRUCTURED_MARKUP


def test_config_for_prefers_highest_enabled_rollout_then_v1():
    def cfg(version, rollout, enabled):
        return ParserConfig(
            site_category=SiteCategory.GENERIC,
            version=version,
            strategies=[StrategyName.HEADING_BLOCK],
            rollout_percentage=rollout,
            enabled=enabled,
        )

    rolled = {SiteCategory.GENERIC: [cfg(ParserVersion.V1, 20, True), cfg(ParserVersion.V2, 80, True)]}
    assert config_for(SiteCategory.GENERIC, rolled).version == ParserVersion.V2

    disabled = {SiteCategory.GENERIC: [cfg(ParserVersion.V2, 0, False), cfg(ParserVersion.V1, 0, False)]}
    assert config_for(SiteCategory.GENERIC, disabled).version == ParserVersion.V1

    only_v3 = {SiteCategory.GENERIC: [cfg(ParserVersion.V3, 0, False)]}
    # Categories missing from the table use the generic entry
    assert config_for(SiteCategory.FACEBOOK, only_v3).version == ParserVersion.V3


def test_html_pattern_fingerprints():
    assert html_pattern("<p>short</p>", SiteCategory.GENERIC) == "too-short"
    assert html_pattern("<div>hello</div>" + PADDING, SiteCategory.GENERIC) == "generic"

    page = '<script id="SIGI_STATE">{}</script><p>Ingredients: 2 cups flour</p>' + PADDING
    assert html_pattern(page, SiteCategory.TIKTOK) == "has-sigi|mentions-ingredients"
    assert html_pattern(page, SiteCategory.GENERIC) == "mentions-ingredients"

    blog = (
        '<script type="application/ld+json">{}</script>'
        "<h2>Ingredients</h2><h2>Directions</h2><p>My favorite recipe.</p>" + PADDING
    )
    assert html_pattern(blog, SiteCategory.RECIPE_SITE) == (
        "has-jsonld|mentions-ingredients|mentions-steps|has-recipe-keyword"
    )


@pytest.mark.asyncio
async def test_best_known_strategy_uses_success_rate(learning_settings):
    store = InMemoryRecipeStore()
    for success in (True, True):
        await store.upsert_extraction_pattern(
            SiteCategory.GENERIC, "generic", StrategyName.HEADING_BLOCK, ParserVersion.V1, success
        )
    for success in (True, False):
        await store.upsert_extraction_pattern(
            SiteCategory.GENERIC, "generic", StrategyName.META_DESCRIPTION, ParserVersion.V1, success
        )
    learning = LearningStore(store, learning_settings)

    assert await learning.best_known_strategy(SiteCategory.GENERIC, "generic") == StrategyName.HEADING_BLOCK
    assert await learning.best_known_strategy(SiteCategory.GENERIC, "other") is None

    picky = LearningStore(store, learning_settings.model_copy(update={"pattern_min_attempts": 3}))
    assert await picky.best_known_strategy(SiteCategory.GENERIC, "generic") is None


@pytest.mark.asyncio
async def test_best_known_strategy_ignores_failing_and_stale_patterns(learning_settings):
    store = InMemoryRecipeStore()
    for _ in range(3):
        await store.upsert_extraction_pattern(
            SiteCategory.GENERIC, "failing", StrategyName.HEADING_BLOCK, ParserVersion.V1, False
        )
    await store.upsert_extraction_pattern(
        SiteCategory.GENERIC, "old", StrategyName.MICRODATA, ParserVersion.V1, True
    )
    store.patterns[("generic", "old", "microdata", "v1")][2] = datetime.utcnow() - timedelta(days=30)

    learning = LearningStore(store, learning_settings)
    assert await learning.best_known_strategy(SiteCategory.GENERIC, "failing") is None
    assert await learning.best_known_strategy(SiteCategory.GENERIC, "old") == StrategyName.MICRODATA

    strict = LearningStore(store, learning_settings.model_copy(update={"pattern_stale_days": 7}))
    assert await strict.best_known_strategy(SiteCategory.GENERIC, "old") is None


@pytest.mark.asyncio
async def test_best_known_strategy_survives_store_errors(learning_settings):
    learning = LearningStore(BrokenStore(), learning_settings)
    assert await learning.best_known_strategy(SiteCategory.GENERIC, "generic") is None


@pytest.mark.asyncio
async def test_log_attempt_truncates_html_sample(learning_settings):
    store = InMemoryRecipeStore()
    learning = LearningStore(store, learning_settings)

    task = learning.log_attempt(_attempt(success=False, raw_html_sample="x" * 50))
    assert task is not None
    await learning.drain()

    assert store.attempts[0].raw_html_sample == "x" * 10
    assert learning.pending == 0


@pytest.mark.asyncio
async def test_log_attempt_disabled_and_failing_store(learning_settings):
    store = InMemoryRecipeStore()
    quiet = LearningStore(store, learning_settings.model_copy(update={"attempt_logging_enabled": False}))
    assert quiet.log_attempt(_attempt()) is None
    assert store.attempts == []

    broken = LearningStore(BrokenStore(), learning_settings)
    broken.log_attempt(_attempt())
    await broken.drain()
    assert broken.pending == 0


def test_log_attempt_without_event_loop_is_dropped(learning_settings):
    store = InMemoryRecipeStore()
    learning = LearningStore(store, learning_settings)
    assert learning.log_attempt(_attempt()) is None
    assert store.attempts == []


@pytest.mark.asyncio
async def test_parser_stats(learning_settings):
    store = InMemoryRecipeStore()
    store.attempts.extend(
        [
            _attempt(success=True, confidence_score=ConfidenceScore.HIGH),
            _attempt(success=True, confidence_score=ConfidenceScore.MEDIUM),
            _attempt(success=False, confidence_score=ConfidenceScore.LOW),
            _attempt(success=False, strategy_used=StrategyName.USER_CORRECTED, confidence_score=None),
            _attempt(parser_version=ParserVersion.V2),
            _attempt(created_at=datetime.utcnow() - timedelta(days=30)),
        ]
    )
    learning = LearningStore(store, learning_settings)

    stats = await learning.parser_stats(SiteCategory.GENERIC, ParserVersion.V1)

    assert stats.total_attempts == 3
    assert stats.success_rate == 66.67
    assert stats.user_correction_rate == 33.33
    assert stats.average_confidence == ConfidenceScore.MEDIUM


@pytest.mark.asyncio
async def test_parser_stats_with_no_attempts(learning_settings):
    learning = LearningStore(InMemoryRecipeStore(), learning_settings)
    stats = await learning.parser_stats(SiteCategory.TIKTOK, ParserVersion.V1)
    assert stats.total_attempts == 0
    assert stats.success_rate == 0.0
    assert stats.average_confidence == ConfidenceScore.LOW


@pytest.mark.asyncio
async def test_track_user_correction(learning_settings):
    store = InMemoryRecipeStore()
    learning = LearningStore(store, learning_settings)

    await learning.track_user_correction("https://example.com/r", SiteCategory.GENERIC, ParserVersion.V1, "user-1")

    [attempt] = store.attempts
    assert attempt.strategy_used == StrategyName.USER_CORRECTED
    assert attempt.success is False
    assert attempt.user_id == "user-1"


@pytest.mark.asyncio
async def test_sql_store_discovered_sites(db_session):
    store = SqlRecipeStore(lambda: db_session)
    await store.upsert_discovered_site("pieblog.net", DetectionMethod.STRUCTURED_MARKUP)
    await store.upsert_discovered_site("pieblog.net", DetectionMethod.MICRODATA)
    assert await store.get_discovered_sites() == ["pieblog.net"]


@pytest.mark.asyncio
async def test_sql_store_patterns(db_session):
    store = SqlRecipeStore(lambda: db_session)
    for success in (True, True, False):
        await store.upsert_extraction_pattern(
            SiteCategory.RECIPE_SITE, "has-jsonld", StrategyName.STRUCTURED_MARKUP, ParserVersion.V1, success
        )
    await store.upsert_extraction_pattern(
        SiteCategory.RECIPE_SITE, "has-jsonld", StrategyName.MICRODATA, ParserVersion.V1, False
    )

    best = await store.query_best_pattern(SiteCategory.RECIPE_SITE, "has-jsonld")

    assert best.method == StrategyName.STRUCTURED_MARKUP
    assert best.total_attempts == 3
    assert round(best.success_rate, 2) == 66.67
    assert await store.query_best_pattern(SiteCategory.GENERIC, "has-jsonld") is None


@pytest.mark.asyncio
async def test_sql_store_parser_stats(db_session, learning_settings):
    store = SqlRecipeStore(lambda: db_session)
    await store.append_import_attempt(_attempt(success=True, confidence_score=ConfidenceScore.HIGH))
    await store.append_import_attempt(_attempt(success=False, confidence_score=ConfidenceScore.HIGH))
    await store.append_import_attempt(_attempt(created_at=datetime.utcnow() - timedelta(days=10)))

    stats = await LearningStore(store, learning_settings).parser_stats(SiteCategory.GENERIC, ParserVersion.V1)

    assert stats.total_attempts == 2
    assert stats.success_rate == 50.0
    assert stats.average_confidence == ConfidenceScore.HIGH


@pytest.mark.asyncio
async def test_sql_store_keeps_the_event_loop_running(db_session):
    def slow_session():
        time.sleep(0.3)
        return db_session

    store = SqlRecipeStore(slow_session)
    ticks = []

    async def ticker():
        for _ in range(5):
            ticks.append(time.monotonic())
            await asyncio.sleep(0.05)

    sites, _ = await asyncio.gather(store.get_discovered_sites(), ticker())

    assert sites == []
    gaps = [later - earlier for earlier, later in zip(ticks, ticks[1:])]
    assert max(gaps) < 0.2
