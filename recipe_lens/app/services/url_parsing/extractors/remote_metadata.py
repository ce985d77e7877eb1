"""Public oEmbed lookups used when page scraping turns up nothing."""

import asyncio
import logging
from typing import Any, Optional

import httpx

from recipe_lens.app.core.config import get_settings
from recipe_lens.app.services.url_parsing.constants import TIKTOK_OEMBED_URL
from recipe_lens.app.services.url_parsing.extractors.caption import smart_extract_from_caption
from recipe_lens.app.services.url_parsing.models import PartialRecipe, SiteCategory
from recipe_lens.app.services.url_parsing.parsing_utils import decode_entities

logger = logging.getLogger(__name__)

OEMBED_ENDPOINTS = {
    SiteCategory.TIKTOK: TIKTOK_OEMBED_URL,
}


async def _get_oembed(endpoint: str, url: str, seconds: float) -> Any:
    settings = get_settings()
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(seconds, connect=min(seconds, 3.0)),
        follow_redirects=True,
        headers={"User-Agent": settings.scraper_user_agent, "Accept": "application/json"},
    ) as client:
        response = await client.get(endpoint, params={"url": url})
        response.raise_for_status()
        return response.json()


async def fetch_oembed_caption(
    url: str, category: SiteCategory, timeout: Optional[float] = None
) -> Optional[str]:
    """Title/caption from the platform's oEmbed endpoint; None on any failure."""
    endpoint = OEMBED_ENDPOINTS.get(category)
    if not endpoint:
        return None
    seconds = timeout if timeout is not None else get_settings().remote_metadata_timeout_seconds
    try:
        payload = await asyncio.wait_for(_get_oembed(endpoint, url, seconds), timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("oEmbed lookup for %s exceeded %.1fs", url, seconds)
        return None
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("oEmbed lookup failed for %s: %s", url, exc)
        return None

    if not isinstance(payload, dict):
        return None
    title = payload.get("title") or payload.get("description")
    if not isinstance(title, str) or not title.strip():
        return None
    return decode_entities(title).strip()


async def extract_recipe_from_remote_metadata(
    url: str, category: SiteCategory, timeout: Optional[float] = None
) -> Optional[PartialRecipe]:
    caption = await fetch_oembed_caption(url, category, timeout=timeout)
    if not caption:
        return None
    parsed = smart_extract_from_caption(caption)
    if parsed is None:
        return None
    parsed.source = "oembed"
    return parsed
