"""Pick the best human title for a page from its many competing title sources."""

import logging
import re
from typing import Iterator, List, Optional, Union

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.confidence import has_hard_signal
from recipe_lens.app.services.url_parsing.constants import (
    COOKING_VERBS,
    PLACEHOLDER_TITLES,
    SECTION_LABELS,
    SITE_TITLE_NAMES,
)
from recipe_lens.app.services.url_parsing.extractors.platform_state import extract_platform_title
from recipe_lens.app.services.url_parsing.extractors.schema_org import json_ld_title_candidates
from recipe_lens.app.services.url_parsing.parsing_utils import (
    HASHTAG_RE,
    LINK_RE,
    MENTION_RE,
    clean_text,
    decode_entities,
    pick_meta,
)

logger = logging.getLogger(__name__)

PLATFORM_TITLE_SELECTORS = (
    '[data-e2e="browse-video-title"]',
    '[data-e2e="video-title"]',
    'h1[dir="auto"]',
)
PIPE_SUFFIX_RE = re.compile(r"\s+\|\s+[^|]{1,60}$")
NAMED_SUFFIX_RE = re.compile(
    r"\s+[|:\-–—]\s+(?:%s)(?:\.com)?\s*$" % "|".join(re.escape(name) for name in SITE_TITLE_NAMES),
    re.I,
)
BY_HANDLE_RE = re.compile(r"\s+by\s+@[\w.]+\s*$", re.I)
MAX_TITLE_CHARS = 100

RECIPE_WORDS_RE = re.compile(
    r"\b(recipe|chicken|beef|pork|shrimp|salmon|pasta|soup|salad|cake|cookies?|bread|tacos?|curry|"
    r"stew|pie|muffins?|brownies?|pancakes?|sandwich|burgers?|noodles|rice|scampi|casserole|dip|sauce)\b",
    re.I,
)
PROMO_RE = re.compile(r"\b(follow|link in bio|subscribe|giveaway|sale|discount|use code|shop now)\b", re.I)
PLATFORM_NAME_RE = re.compile(r"\b(tiktok|instagram|facebook|youtube|reels?)\b", re.I)
DISH_NAME_RE = re.compile(r"^(?:[A-Z][a-z'’]+)(?:\s+[A-Z][a-z'’]+){1,3}$")


def _as_soup(soup_or_html: Union[BeautifulSoup, str, None]) -> BeautifulSoup:
    if isinstance(soup_or_html, BeautifulSoup):
        return soup_or_html
    return BeautifulSoup(soup_or_html or "", "lxml")


def is_placeholder_title(text: Optional[str]) -> bool:
    return not text or clean_text(text).lower() in PLACEHOLDER_TITLES


def strip_site_suffix(title: str) -> str:
    """Drop a " | Anything" tail or a " - Known Site" tail; hyphens inside a dish name stay."""
    stripped = NAMED_SUFFIX_RE.sub("", title)
    stripped = PIPE_SUFFIX_RE.sub("", stripped)
    return stripped if len(stripped) >= 3 else title


def clean_title(text: Optional[str], strip_credits: bool = True) -> Optional[str]:
    """Collapse whitespace and strip site-name suffixes and "by @handle" credits.

    Declared names (a Recipe node's ``name``) pass ``strip_credits=False`` and
    only get whitespace and entity cleanup.
    """
    title = clean_text(decode_entities(text))
    if not title:
        return None
    if strip_credits:
        title = strip_site_suffix(BY_HANDLE_RE.sub("", title))
    title = title.strip()
    return title or None


def is_section_label(text: str) -> bool:
    return clean_text(text).rstrip(":").lower() in SECTION_LABELS


def score_title_candidate(text: str) -> Optional[int]:
    """Heuristic score for a caption line as a title; None when it can never be one."""
    line = clean_text(text)
    if not line or LINK_RE.search(line) or MENTION_RE.search(line) or HASHTAG_RE.search(line):
        return None
    words = line.split()
    if words[0].lower().strip(".,:!") in COOKING_VERBS:
        return None
    score = 0
    if RECIPE_WORDS_RE.search(line):
        score += 30
    if all(w[0].isupper() for w in words if w[0].isalpha() and len(w) > 3):
        score += 10
    if DISH_NAME_RE.match(line):
        score += 50
    if 2 <= len(words) <= 6:
        score += 20
    if PROMO_RE.search(line):
        score -= 40
    if PLATFORM_NAME_RE.search(line):
        score -= 30
    if has_hard_signal(line):
        score -= 20
    return score


def best_caption_title(caption: Optional[str]) -> Optional[str]:
    """Highest-scoring short line of a caption."""
    best: Optional[str] = None
    best_score = 0
    for line in (caption or "").splitlines():
        line = clean_text(line)
        if not line or len(line) > MAX_TITLE_CHARS:
            continue
        score = score_title_candidate(line)
        if score is not None and score > best_score:
            best, best_score = line, score
    return best


def _platform_heading(soup: BeautifulSoup) -> Optional[str]:
    for selector in PLATFORM_TITLE_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = node.get_text("\n", strip=True)
        if len(clean_text(text)) > MAX_TITLE_CHARS:
            text = best_caption_title(text) or ""
        if text:
            return text
    return None


def _first_heading(soup: BeautifulSoup) -> Optional[str]:
    for name in ("h1", "h2"):
        for node in soup.find_all(name):
            text = clean_text(node.get_text(" ", strip=True))
            if text and not is_section_label(text):
                return text
    return None


def _candidates(soup: BeautifulSoup, html: str) -> Iterator[tuple[str, Optional[str]]]:
    yield "platform-heading", _platform_heading(soup)

    ranked = sorted(json_ld_title_candidates(html), key=lambda c: (c[0], len(c[1])), reverse=True)
    for _score, title in ranked:
        yield "json-ld", title

    yield "og:title", pick_meta(soup, "og:title")
    yield "twitter:title", pick_meta(soup, "twitter:title")
    yield "platform-state", extract_platform_title(html)
    yield "heading", _first_heading(soup)

    title_tag = soup.find("title")
    yield "title-tag", title_tag.get_text(" ", strip=True) if title_tag else None


def resolve_title(soup_or_html: Union[BeautifulSoup, str, None], url: str) -> Optional[str]:
    """First acceptable title, in order of how much each source tends to be right."""
    if isinstance(soup_or_html, BeautifulSoup):
        soup, html = soup_or_html, str(soup_or_html)
    else:
        html = soup_or_html or ""
        soup = _as_soup(html)

    rejected: List[str] = []
    for source, raw in _candidates(soup, html):
        if not raw or is_placeholder_title(raw):
            continue
        title = clean_title(raw)
        if not title or is_placeholder_title(title):
            rejected.append(source)
            continue
        logger.debug("Title for %s from %s: %s", url, source, title)
        return title
    logger.debug("No title for %s (rejected: %s)", url, ", ".join(rejected) or "none")
    return None
