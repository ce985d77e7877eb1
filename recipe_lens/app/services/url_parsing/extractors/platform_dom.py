"""Caption text read straight from known platform markup."""

import json
import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.extractors.caption import smart_extract_from_caption
from recipe_lens.app.services.url_parsing.models import PartialRecipe, SiteCategory
from recipe_lens.app.services.url_parsing.parsing_utils import (
    clean_text,
    decode_entities,
    mentions_ingredients,
)

logger = logging.getLogger(__name__)

TIKTOK_CAPTION_KEYS = (
    "browse-video-desc",
    "video-desc",
    "new-desc-span",
    "search-video-desc",
)
MIN_VISIBLE_CAPTION = 50
DESCRIPTION_KEY_RE = re.compile(r'"(description|desc)"\s*:\s*"((?:[^"\\]|\\.){20,})"')
DESCRIPTION_NOISE_RE = re.compile(r"scan the QR code|^seo_|^pcWeb_", re.I)


def _text_with_breaks(node) -> str:
    for br in node.find_all("br"):
        br.replace_with("\n")
    lines = [clean_text(line) for line in node.get_text("\n").splitlines()]
    return "\n".join(line for line in lines if line)


def _tiktok_visible_caption(soup: BeautifulSoup) -> Optional[str]:
    for key in TIKTOK_CAPTION_KEYS:
        node = soup.find(attrs={"data-e2e": key})
        if node is not None:
            text = _text_with_breaks(node)
            if text:
                return text
    return None


def _instagram_visible_caption(soup: BeautifulSoup) -> Optional[str]:
    article = soup.find("article")
    if article is not None:
        spans = [clean_text(s.get_text(" ", strip=True)) for s in article.find_all("span", attrs={"dir": "auto"})]
        spans = [s for s in spans if len(s) > MIN_VISIBLE_CAPTION]
        if spans:
            return max(spans, key=len)
    heading = soup.find("h1", attrs={"dir": "auto"})
    if heading is not None:
        text = clean_text(heading.get_text(" ", strip=True))
        if len(text) > MIN_VISIBLE_CAPTION:
            return text
    return None


def extract_visible_caption(html: str, category: Optional[SiteCategory] = None) -> Optional[str]:
    soup = BeautifulSoup(html or "", "lxml")
    for tag in soup.find_all(["script", "style", "noscript"]):
        tag.decompose()
    if category in (None, SiteCategory.TIKTOK):
        caption = _tiktok_visible_caption(soup)
        if caption:
            return caption
    if category in (None, SiteCategory.INSTAGRAM, SiteCategory.FACEBOOK):
        caption = _instagram_visible_caption(soup)
        if caption:
            return caption
    return None


def extract_description_key_caption(html: str) -> Optional[str]:
    """Best "desc"/"description" string literal anywhere in inline JSON."""
    best: Optional[str] = None
    best_score = 0
    for match in DESCRIPTION_KEY_RE.finditer(html or ""):
        raw = match.group(2)
        try:
            text = decode_entities(json.loads(f'"{raw}"'))
        except json.JSONDecodeError:
            continue
        if DESCRIPTION_NOISE_RE.search(text):
            continue
        score = len(text) + (400 if mentions_ingredients(text) else 0)
        if score > best_score:
            best, best_score = text, score
    return best


def extract_recipe_from_platform_dom(
    html: str, url: str, category: Optional[SiteCategory] = None
) -> Optional[PartialRecipe]:
    candidates: List[str] = []
    visible = extract_visible_caption(html, category)
    if visible:
        candidates.append(visible)
    described = extract_description_key_caption(html)
    if described:
        candidates.append(described)

    for caption in candidates:
        parsed = smart_extract_from_caption(caption)
        if parsed and parsed.ingredients:
            parsed.source = "platform-dom"
            logger.info("Platform DOM caption for %s yielded %d ingredients", url, len(parsed.ingredients))
            return parsed
    return None
