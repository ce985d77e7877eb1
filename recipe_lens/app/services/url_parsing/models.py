"""Pydantic models and enums for URL recipe extraction."""

import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SiteCategory(str, enum.Enum):
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    RECIPE_SITE = "recipe_site"
    GENERIC = "generic"

    @property
    def is_platform(self) -> bool:
        return self in {SiteCategory.TIKTOK, SiteCategory.INSTAGRAM, SiteCategory.FACEBOOK}


class DetectionMethod(str, enum.Enum):
    STRUCTURED_MARKUP = "structured_markup"
    MICRODATA = "microdata"
    HEURISTIC_HTML = "heuristic_html"


class StrategyName(str, enum.Enum):
    STRUCTURED_MARKUP = "structured_markup"
    MICRODATA = "microdata"
    SITE_EXTRAS = "site_extras"
    PLATFORM_STATE = "platform_state"
    PLATFORM_DOM = "platform_dom"
    REMOTE_METADATA = "remote_metadata"
    JSONLD_CAPTION = "jsonld_caption"
    META_DESCRIPTION = "meta_description"
    HEADING_BLOCK = "heading_block"
    CLIENT_RENDER = "client_render"
    FALLBACK = "fallback"
    # Only ever written to the attempt log
    USER_CORRECTED = "user_corrected"
    ERROR = "error"


class ParserVersion(str, enum.Enum):
    V1 = "v1"
    V2 = "v2"
    V3 = "v3"


class ConfidenceScore(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PartialRecipe(BaseModel):
    """Whatever a single extractor managed to pull out of a page."""

    title: Optional[str] = None
    image: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    total_time_minutes: Optional[int] = None
    servings: Optional[int] = None
    caption: Optional[str] = None
    source: Optional[str] = None


class RecipeMeta(BaseModel):
    """Final normalized record returned to callers."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    title: Optional[str] = None
    image: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    needs_client_render: Optional[bool] = Field(None, alias="needsClientRender")
    strategy: Optional[StrategyName] = None
    site_category: Optional[SiteCategory] = Field(None, alias="siteCategory")


class ParserConfig(BaseModel):
    site_category: SiteCategory
    version: ParserVersion
    strategies: List[StrategyName]
    rollout_percentage: int = Field(100, ge=0, le=100)
    enabled: bool = True


class ImportAttempt(BaseModel):
    url: str
    site_category: SiteCategory
    parser_version: ParserVersion
    strategy_used: StrategyName
    success: bool
    confidence_score: Optional[ConfidenceScore] = None
    ingredients_count: int = 0
    steps_count: int = 0
    html_pattern: Optional[str] = None
    raw_html_sample: Optional[str] = None
    error_message: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PatternStat(BaseModel):
    method: StrategyName
    success_rate: float
    total_attempts: int
    last_attempt_at: Optional[datetime] = None


class ParserStats(BaseModel):
    site_category: SiteCategory
    version: ParserVersion
    total_attempts: int = 0
    success_rate: float = 0.0
    average_confidence: ConfidenceScore = ConfidenceScore.LOW
    user_correction_rate: float = 0.0
