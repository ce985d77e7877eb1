"""Heuristic extraction from an "Ingredients" heading followed by a directions heading."""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.confidence import looks_real_ingredients
from recipe_lens.app.services.url_parsing.extractors.caption import extract_near_keyword
from recipe_lens.app.services.url_parsing.models import PartialRecipe
from recipe_lens.app.services.url_parsing.parsing_utils import (
    LEADING_STEP_NUMBER_RE,
    clean_text,
    has_cooking_verb,
    html_to_text_with_breaks,
    strip_step_number,
)

logger = logging.getLogger(__name__)

HEADING_LIKE_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "strong", "b", "p", "span", "div", "dt", "label", "summary", "header"]
SECTION_HEADINGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
MAX_HEADING_CHARS = 40
MAX_INGREDIENT_PARAGRAPH = 120

INGREDIENTS_HEADING_RE = re.compile(r"^ingredients?(?:\s+needed)?\s*:?$", re.I)
DIRECTIONS_HEADING_RE = re.compile(
    r"^(?:directions?|instructions?|steps?|method|preparation|how\s+to\s+make(?:\s+it)?)\s*:?$",
    re.I,
)
STOP_HEADING_RE = re.compile(r"^(?:notes?|nutrition(?:\s+facts)?|equipment|tips?|video|related|comments?|reviews?)\b", re.I)


def _short_text(node) -> Optional[str]:
    text = clean_text(node.get_text(" ", strip=True))
    if not text or len(text) > MAX_HEADING_CHARS:
        return None
    return text


def clean_soup_for_content(soup: BeautifulSoup) -> None:
    """Remove nodes that never hold recipe content."""
    for tag in soup.find_all(["script", "style", "noscript", "template", "nav", "footer", "form"]):
        tag.decompose()


def find_ingredients_heading(soup: BeautifulSoup):
    for node in soup.find_all(HEADING_LIKE_TAGS):
        text = _short_text(node)
        if text and INGREDIENTS_HEADING_RE.match(text):
            return node
    return None


def _inside(node, ancestor) -> bool:
    return any(parent is ancestor for parent in node.parents)


def _has_li_ancestor(node) -> bool:
    return node.find_parent("li") is not None


def extract_recipe_from_heading_block(html: str, url: str) -> Optional[PartialRecipe]:
    """Capture list items or paragraphs between an Ingredients heading and the directions."""
    soup = BeautifulSoup(html or "", "lxml")
    clean_soup_for_content(soup)
    heading = find_ingredients_heading(soup)
    if heading is None:
        return None

    ingredient_items: List[str] = []
    ingredient_paragraphs: List[str] = []
    step_items: List[str] = []
    numbered_paragraphs: List[str] = []
    verb_paragraphs: List[str] = []
    directions_heading = None

    for node in heading.find_all_next(True):
        if _inside(node, heading):
            continue
        if directions_heading is not None and _inside(node, directions_heading):
            continue
        text = _short_text(node) if node.name in HEADING_LIKE_TAGS else None

        if directions_heading is None:
            if text and DIRECTIONS_HEADING_RE.match(text):
                directions_heading = node
                continue
            if text and node.name in SECTION_HEADINGS and STOP_HEADING_RE.match(text):
                break
            if node.name == "li" and not _has_li_ancestor(node):
                item = clean_text(node.get_text(" ", strip=True))
                if item:
                    ingredient_items.append(item)
            elif node.name == "p" and not _has_li_ancestor(node):
                item = clean_text(node.get_text(" ", strip=True))
                if item and len(item) <= MAX_INGREDIENT_PARAGRAPH:
                    ingredient_paragraphs.append(item)
            continue

        collected = step_items or numbered_paragraphs or verb_paragraphs
        if text and node.name in SECTION_HEADINGS and collected:
            break
        if text and (STOP_HEADING_RE.match(text) or INGREDIENTS_HEADING_RE.match(text)):
            break
        if node.name == "li" and not _has_li_ancestor(node):
            step = clean_text(strip_step_number(node.get_text(" ", strip=True)))
            if step:
                step_items.append(step)
        elif node.name == "p" and not _has_li_ancestor(node):
            raw = clean_text(node.get_text(" ", strip=True))
            if not raw:
                continue
            if LEADING_STEP_NUMBER_RE.match(raw) and LEADING_STEP_NUMBER_RE.sub("", raw, count=1):
                numbered_paragraphs.append(clean_text(strip_step_number(raw)))
            elif has_cooking_verb(raw):
                verb_paragraphs.append(raw)

    ingredients = ingredient_items or ingredient_paragraphs
    steps = step_items or numbered_paragraphs or verb_paragraphs
    logger.info(
        "Heading block for %s: ingredients=%d, steps=%d (directions heading %s)",
        url,
        len(ingredients),
        len(steps),
        "found" if directions_heading is not None else "missing",
    )
    if not ingredients and not steps:
        return None
    return PartialRecipe(ingredients=ingredients, steps=steps, source="heading-block")


def extract_recipe_from_visible_text(html: str, url: str) -> Optional[PartialRecipe]:
    """Heading-block markup first, then the loose "Ingredients:" text capture."""
    parsed = extract_recipe_from_heading_block(html, url)
    if parsed and looks_real_ingredients(parsed.ingredients):
        return parsed
    loose = extract_near_keyword(html_to_text_with_breaks(html))
    if loose and looks_real_ingredients(loose.ingredients):
        logger.info("Loose visible-text capture for %s: ingredients=%d", url, len(loose.ingredients))
        return loose
    return parsed or loose
