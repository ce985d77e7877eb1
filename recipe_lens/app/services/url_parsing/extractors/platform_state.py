"""Caption extraction from client-side state blobs embedded by video platforms."""

import json
import logging
import re
from typing import Any, Callable, List, Optional, Tuple

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.constants import PLACEHOLDER_TITLES
from recipe_lens.app.services.url_parsing.extractors.caption import smart_extract_from_caption
from recipe_lens.app.services.url_parsing.models import PartialRecipe, SiteCategory
from recipe_lens.app.services.url_parsing.parsing_utils import decode_entities, loads_object_at

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 12
MIN_CAPTION_CHARS = 10

STATE_SCRIPT_IDS = ("SIGI_STATE", "__UNIVERSAL_DATA_FOR_REHYDRATION__", "__NEXT_DATA__")
STATE_ASSIGNMENTS = (
    re.compile(r"window\[['\"]SIGI_STATE['\"]\]\s*=\s*"),
    re.compile(r"window\._sharedData\s*=\s*"),
    re.compile(r"window\.__additionalDataLoaded\([^,]+,\s*"),
)
ITEM_MODULE_RE = re.compile(r"\"ItemModule\"\s*:\s*")

CAPTION_KEYS = {"desc", "description", "caption", "sharetitle", "text", "title"}
SKIPPED_KEY_PREFIXES = ("seo_", "pcweb_")
NOISE_RE = re.compile(r"scan the QR code|TikTok\s*[-–]\s*Make Your Day|^https?://", re.I)


def walk_for_fields(
    obj: Any,
    predicate: Callable[[str, Any], bool],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[Tuple[str, Any]]:
    """Collect (key, value) pairs accepted by ``predicate`` from a JSON object graph.

    The walk is depth-bounded and keeps a visited set, so shared or cyclic
    references are only expanded once.
    """
    found: List[Tuple[str, Any]] = []
    visited = set()
    stack: List[Tuple[Any, int]] = [(obj, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > max_depth or id(node) in visited:
            continue
        if isinstance(node, dict):
            visited.add(id(node))
            for key, value in node.items():
                if predicate(str(key), value):
                    found.append((str(key), value))
                if isinstance(value, (dict, list)):
                    stack.append((value, depth + 1))
        elif isinstance(node, list):
            visited.add(id(node))
            for value in node:
                if isinstance(value, (dict, list)):
                    stack.append((value, depth + 1))
    return found


def is_caption_field(key: str, value: Any) -> bool:
    lowered = key.lower()
    if lowered.startswith(SKIPPED_KEY_PREFIXES) or lowered not in CAPTION_KEYS:
        return False
    return isinstance(value, str) and len(value.strip()) >= MIN_CAPTION_CHARS


def find_state_blobs(html: str) -> List[Any]:
    """Every embedded client-state object we know how to locate."""
    blobs: List[Any] = []
    if not html:
        return blobs
    soup = BeautifulSoup(html, "lxml")
    for script_id in STATE_SCRIPT_IDS:
        script = soup.find("script", attrs={"id": script_id})
        raw = (script.string or script.get_text()) if script else None
        if not raw:
            continue
        try:
            blobs.append(json.loads(raw))
        except json.JSONDecodeError:
            recovered = loads_object_at(raw, raw.find("{"))
            if recovered is not None:
                blobs.append(recovered)
            else:
                logger.debug("State script %s did not parse", script_id)

    for pattern in STATE_ASSIGNMENTS:
        for match in pattern.finditer(html):
            obj = loads_object_at(html, match.end())
            if obj is not None:
                blobs.append(obj)

    if not blobs:
        for match in ITEM_MODULE_RE.finditer(html):
            obj = loads_object_at(html, match.end())
            if obj is not None:
                blobs.append({"ItemModule": obj})
                break
    logger.debug("Found %d embedded state blobs", len(blobs))
    return blobs


def _plausible(text: str) -> bool:
    stripped = text.strip()
    return bool(stripped) and stripped.lower() not in PLACEHOLDER_TITLES and not NOISE_RE.search(stripped)


def extract_platform_caption(html: str, category: Optional[SiteCategory] = None) -> Optional[str]:
    """Longest plausible caption/description found anywhere in the state blobs."""
    best: Optional[str] = None
    for blob in find_state_blobs(html):
        for _key, value in walk_for_fields(blob, is_caption_field):
            text = decode_entities(value).strip()
            if _plausible(text) and (best is None or len(text) > len(best)):
                best = text
    if best:
        logger.info("Platform state caption found (%d chars, category=%s)", len(best), category)
    return best


def extract_platform_title(html: str) -> Optional[str]:
    """Explicit title fields from state, else the first line of the caption."""
    titles: List[str] = []
    for blob in find_state_blobs(html):
        for _key, value in walk_for_fields(
            blob, lambda k, v: k.lower() in {"title", "sharetitle"} and isinstance(v, str)
        ):
            text = decode_entities(value).strip()
            if _plausible(text) and len(text) <= 100:
                titles.append(text)
    if titles:
        return max(titles, key=len)
    caption = extract_platform_caption(html)
    if caption:
        first_line = caption.strip().split("\n", 1)[0].strip()
        return first_line[:100] or None
    return None


def extract_recipe_from_platform_state(
    html: str, url: str, category: Optional[SiteCategory] = None
) -> Optional[PartialRecipe]:
    caption = extract_platform_caption(html, category)
    if not caption:
        return None
    parsed = smart_extract_from_caption(caption)
    if parsed is None:
        return None
    parsed.source = "platform-state"
    return parsed
