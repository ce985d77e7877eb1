from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from recipe_lens.app.api.deps import get_db_session
from recipe_lens.app.services.recipe_store import SqlRecipeStore
from recipe_lens.app.services.url_parsing.models import ParserStats, ParserVersion, SiteCategory
from recipe_lens.app.services.url_parsing.versioning import LearningStore

router = APIRouter(prefix="/parser-stats", tags=["parser-stats"])


@router.get("/{site_category}", response_model=ParserStats)
async def get_parser_stats(
    site_category: SiteCategory,
    version: ParserVersion = ParserVersion.V1,
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db_session),
) -> ParserStats:
    learning = LearningStore(SqlRecipeStore(lambda: db))
    return await learning.parser_stats(site_category, version, days=days)
