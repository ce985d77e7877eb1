from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from recipe_lens.app.api.deps import get_recipe_extractor
from recipe_lens.app.services.recipe_extractor import RecipeExtractor
from recipe_lens.app.services.url_parsing.models import ParserVersion, RecipeMeta, SiteCategory

router = APIRouter(prefix="/recipes", tags=["recipes"])


class ExtractRequest(BaseModel):
    url: str


class CorrectionRequest(BaseModel):
    url: str
    site_category: SiteCategory
    version: ParserVersion = ParserVersion.V1
    user_id: Optional[str] = None


@router.post("/extract", response_model=RecipeMeta)
async def extract_recipe(
    payload: ExtractRequest,
    extractor: RecipeExtractor = Depends(get_recipe_extractor),
) -> RecipeMeta:
    """
    Extract a normalized recipe (title, image, ingredients, steps) from a page or post URL.

    Pages that yield nothing still return 200 with empty lists; only an
    unusable URL is rejected (422, error_code="invalid_url").
    """
    return await extractor.extract(payload.url)


@router.post("/extract/corrections", status_code=status.HTTP_204_NO_CONTENT)
async def record_correction(
    payload: CorrectionRequest,
    extractor: RecipeExtractor = Depends(get_recipe_extractor),
) -> Response:
    task = extractor.learning.track_user_correction(
        payload.url, payload.site_category, payload.version, user_id=payload.user_id
    )
    if task is not None:
        await task
    return Response(status_code=status.HTTP_204_NO_CONTENT)
