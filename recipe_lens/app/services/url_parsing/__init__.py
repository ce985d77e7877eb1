"""URL recipe extraction package.

This package turns arbitrary recipe pages and social posts into normalized
recipes using structured data, platform state blobs, captions and visible
headings, and learns which strategy works for which kind of page.
"""

from recipe_lens.app.services.url_parsing.confidence import has_hard_signal, looks_real_ingredients
from recipe_lens.app.services.url_parsing.html_fetcher import (
    InvalidRecipeUrl,
    fetch_document,
    fetch_html,
    fetch_mobile_html,
    is_private_host,
    needs_mobile_refetch,
    validate_url,
)
from recipe_lens.app.services.url_parsing.ingredient_normalizer import (
    normalize_ingredient_block,
    normalize_ingredient_lines,
    parse_ingredient_line,
    sanitize_ingredient_lines,
)
from recipe_lens.app.services.url_parsing.models import (
    ConfidenceScore,
    DetectionMethod,
    ImportAttempt,
    ParserConfig,
    ParserStats,
    ParserVersion,
    PartialRecipe,
    PatternStat,
    RecipeMeta,
    SiteCategory,
    StrategyName,
)
from recipe_lens.app.services.url_parsing.site_classifier import (
    DiscoveredSiteCache,
    SiteClassifier,
    normalize_hostname,
)
from recipe_lens.app.services.url_parsing.title_resolver import resolve_title, score_title_candidate
from recipe_lens.app.services.url_parsing.versioning import (
    DEFAULT_CONFIGS,
    InMemoryRecipeStore,
    LearningStore,
    RecipeStore,
    config_for,
    html_pattern,
)

__all__ = [
    # Models
    "ConfidenceScore",
    "DetectionMethod",
    "ImportAttempt",
    "ParserConfig",
    "ParserStats",
    "ParserVersion",
    "PartialRecipe",
    "PatternStat",
    "RecipeMeta",
    "SiteCategory",
    "StrategyName",
    # HTML fetching
    "InvalidRecipeUrl",
    "fetch_document",
    "fetch_html",
    "fetch_mobile_html",
    "is_private_host",
    "needs_mobile_refetch",
    "validate_url",
    # Ingredient normalization
    "has_hard_signal",
    "looks_real_ingredients",
    "normalize_ingredient_block",
    "normalize_ingredient_lines",
    "parse_ingredient_line",
    "sanitize_ingredient_lines",
    # Classification and titles
    "DiscoveredSiteCache",
    "SiteClassifier",
    "normalize_hostname",
    "resolve_title",
    "score_title_candidate",
    # Versioning and learning
    "DEFAULT_CONFIGS",
    "InMemoryRecipeStore",
    "LearningStore",
    "RecipeStore",
    "config_for",
    "html_pattern",
]
