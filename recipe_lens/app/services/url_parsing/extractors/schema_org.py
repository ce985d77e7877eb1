"""Schema.org JSON-LD recipe extraction."""

import json
import logging
import re
from typing import Any, Iterator, List, Optional

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.extractors.caption import smart_extract_from_caption
from recipe_lens.app.services.url_parsing.models import PartialRecipe
from recipe_lens.app.services.url_parsing.parsing_utils import (
    clean_text,
    decode_entities,
    extract_image,
    extract_instruction_text,
    loads_object_at,
    mentions_ingredients,
    parse_servings,
    parse_total_minutes,
    strip_tags,
)

logger = logging.getLogger(__name__)

RECIPE_MARKER_RE = re.compile(r'"@type"\s*:\s*(?:\[[^\]]*?)?"Recipe"', re.I)
JS_ASSIGNMENT_RE = re.compile(r"^[^={\[]*=\s*")
RECOVERY_WINDOW = 50_000
CAPTION_KEYS_RE = re.compile(r"^(description|headline|caption|articleBody|name|text|about)$", re.I)
CAPTION_NOISE_RE = re.compile(r"TikTok\s*[-–]\s*Make Your Day|scan the QR code", re.I)


def node_types(node: dict) -> List[str]:
    raw = node.get("@type") or node.get("type") or []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [str(t) for t in raw]


def is_recipe_node(node: Any) -> bool:
    return isinstance(node, dict) and any("recipe" in t.lower() for t in node_types(node))


def _recover_around_marker(raw: str) -> Optional[dict]:
    """Find a parseable object enclosing an inline "@type": "Recipe" marker."""
    for marker in RECIPE_MARKER_RE.finditer(raw):
        floor = max(0, marker.start() - RECOVERY_WINDOW)
        pos = raw.rfind("{", floor, marker.start())
        while pos != -1:
            candidate = loads_object_at(raw[: marker.start() + RECOVERY_WINDOW], pos)
            if is_recipe_node(candidate):
                return candidate
            pos = raw.rfind("{", floor, pos)
    return None


def recover_json_block(raw: str) -> Any:
    """Parse a JSON-LD block, repairing the usual ways sites break them."""
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.debug("JSON-LD block failed to parse (%s); attempting recovery", exc)

    cleaned = JS_ASSIGNMENT_RE.sub("", text, count=1) if "=" in text.split("{", 1)[0] else text
    cleaned = cleaned.strip().rstrip(";").strip()
    first, last = cleaned.find("{"), cleaned.rfind("}")
    if first != -1 and last > first:
        try:
            return json.loads(cleaned[first : last + 1])
        except json.JSONDecodeError:
            pass

    recovered = _recover_around_marker(text)
    if recovered is not None:
        logger.info("Recovered Recipe object from malformed JSON-LD block")
        return recovered
    logger.warning("JSON-LD block abandoned after recovery attempts (first 200 chars: %s)", text[:200])
    return None


def iter_json_ld_payloads(html: str) -> Iterator[Any]:
    soup = BeautifulSoup(html or "", "lxml")
    scripts = soup.find_all("script", attrs={"type": re.compile(r"ld\+json", re.I)})
    logger.debug("Found %d JSON-LD script blocks", len(scripts))
    for script in scripts:
        raw = script.string or script.get_text()
        data = recover_json_block(raw)
        if data is not None:
            yield data


def flatten_nodes(data: Any) -> List[dict]:
    """Every object reachable through lists, @graph and mainEntity."""
    out: List[dict] = []
    stack = [data]
    while stack:
        item = stack.pop(0)
        if isinstance(item, list):
            stack[0:0] = item
        elif isinstance(item, dict):
            out.append(item)
            graph = item.get("@graph")
            if isinstance(graph, list):
                stack.extend(graph)
            main = item.get("mainEntity")
            if isinstance(main, (dict, list)):
                stack.append(main)
    return out


def iter_json_ld_nodes(html: str) -> Iterator[dict]:
    for data in iter_json_ld_payloads(html):
        yield from flatten_nodes(data)


def _ingredient_lines(value) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    lines: List[str] = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("text") or item.get("name") or ""
        text = strip_tags(str(item)) if item else ""
        if text:
            lines.append(text)
    return lines


def recipe_from_node(node: dict) -> PartialRecipe:
    return PartialRecipe(
        title=strip_tags(node.get("name") or node.get("headline") or "") or None,
        image=extract_image(node.get("image") or node.get("thumbnailUrl")),
        ingredients=_ingredient_lines(node.get("recipeIngredient") or node.get("ingredients")),
        steps=extract_instruction_text(node.get("recipeInstructions") or []),
        total_time_minutes=parse_total_minutes(node),
        servings=parse_servings(node.get("recipeYield")),
        source="json-ld:Recipe",
    )


def _scan_inline_recipe(html: str) -> Optional[dict]:
    """Recipe objects embedded in other scripts (hydration blobs, inline JSON)."""
    if not RECIPE_MARKER_RE.search(html or ""):
        return None
    return _recover_around_marker(html)


def extract_recipe_from_schema_org(html: str, url: str) -> Optional[PartialRecipe]:
    """Extract a recipe from schema.org JSON-LD data embedded in HTML."""
    fallback: Optional[PartialRecipe] = None
    for idx, node in enumerate(iter_json_ld_nodes(html)):
        if not is_recipe_node(node):
            logger.debug("Candidate %d is not a Recipe (type: %s), skipping", idx, node_types(node))
            continue
        parsed = recipe_from_node(node)
        logger.info(
            "Recipe candidate %d for %s: title=%s, ingredients=%d, steps=%d",
            idx,
            url,
            (parsed.title or "None")[:50],
            len(parsed.ingredients),
            len(parsed.steps),
        )
        if parsed.ingredients or parsed.steps:
            return parsed
        fallback = fallback or parsed

    inline = _scan_inline_recipe(html)
    if inline is not None:
        parsed = recipe_from_node(inline)
        if parsed.ingredients or parsed.steps:
            logger.info("Recipe found inline outside JSON-LD scripts for %s", url)
            return parsed
    return fallback


def collect_caption_strings(node: Any) -> List[str]:
    out: List[str] = []
    stack = [node]
    seen = set()
    while stack:
        item = stack.pop()
        if id(item) in seen:
            continue
        seen.add(id(item))
        if isinstance(item, list):
            stack.extend(item)
        elif isinstance(item, dict):
            for key, value in item.items():
                if isinstance(value, str):
                    if CAPTION_KEYS_RE.match(str(key)):
                        out.append(value)
                elif isinstance(value, (dict, list)):
                    stack.append(value)
    return out


def extract_best_json_ld_caption(html: str) -> Optional[str]:
    """Best caption-like string among non-Recipe JSON-LD nodes."""
    best: Optional[str] = None
    best_score = 0
    for data in iter_json_ld_payloads(html):
        for node in flatten_nodes(data):
            if is_recipe_node(node):
                continue
            for candidate in collect_caption_strings(node):
                text = decode_entities(candidate).strip()
                if len(text) < 20 or CAPTION_NOISE_RE.search(text):
                    continue
                score = len(text) + (500 if mentions_ingredients(text) else 0)
                score += 200 if re.search(r"\d", text) else 0
                if score > best_score:
                    best, best_score = text, score
    return best


def has_structured_recipe(html: str) -> bool:
    parsed = extract_recipe_from_schema_org(html, "")
    return bool(parsed and (parsed.ingredients or parsed.steps))


def json_ld_title_candidates(html: str) -> List[tuple[int, str]]:
    """(score, title) pairs; Recipe nodes outrank article, page and media nodes."""
    candidates: List[tuple[int, str]] = []
    for node in iter_json_ld_nodes(html):
        types = [t.lower() for t in node_types(node)]
        if any("recipe" in t for t in types):
            score = 3
        elif any(
            t in {"article", "newsarticle", "blogposting", "webpage", "videoobject", "socialmediaposting"}
            for t in types
        ):
            score = 1
        else:
            score = 0
        title = clean_text(strip_tags(node.get("name") or node.get("headline") or ""))
        if title:
            candidates.append((score, title))
    return candidates


def extract_recipe_from_json_ld_caption(html: str, url: str) -> Optional[PartialRecipe]:
    """Caption inference over the best description-like JSON-LD string."""
    caption = extract_best_json_ld_caption(html)
    if not caption:
        return None
    parsed = smart_extract_from_caption(caption)
    if parsed is None:
        return None
    parsed.source = "json-ld:caption"
    logger.info("JSON-LD caption for %s yielded %d ingredients", url, len(parsed.ingredients))
    return parsed
