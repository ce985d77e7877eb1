"""Free-text caption inference: split loose text into ingredients and steps."""

import logging
import re
from typing import List, Optional

from recipe_lens.app.services.url_parsing.confidence import has_hard_signal, has_soft_signal
from recipe_lens.app.services.url_parsing.models import PartialRecipe
from recipe_lens.app.services.url_parsing.parsing_utils import (
    clean_text,
    has_cooking_verb,
    split_directions_text,
    strip_instagram_boilerplate,
    strip_links_and_hashtags,
    trim_trailing_punct,
)

logger = logging.getLogger(__name__)

INGREDIENTS_HEADER_RE = re.compile(r"\bingredients?\b(?:\s+needed)?\s*[:\-–—]?", re.I)
DIRECTIONS_HEADER_RE = re.compile(
    r"\b(?:directions?|instructions?|steps?|method|how\s+to\s+make(?:\s+it)?)\b[ \t]*(?:[:\-–—]|\n)",
    re.I,
)
DIRECTIONS_LINE_RE = re.compile(
    r"^(?:directions?|steps?|method|instructions?|preparation)\s*:?$", re.I
)
INGREDIENTS_LINE_RE = re.compile(r"^ingredients?(?:\s+needed)?\s*:?\s*(.*)$", re.I)
STOP_LINE_RE = re.compile(r"^(?:notes?|nutrition|equipment|video|related|comments?|tips?)\b\s*:?", re.I)
BLOCK_SPLIT_RE = re.compile(r"\n|;|\||\s[-–—]\s|[•·▪▫►▶✅✔🔸🔹]")
CHUNK_SPLIT_RE = re.compile(r"\n+|(?<=[.!?])\s+|\s*[;|•]\s*")

MAX_INGREDIENT_LINE = 120
MAX_INFERRED_INGREDIENT = 90
MAX_CHUNKS = 80
MAX_KEYWORD_INGREDIENTS = 25
MAX_KEYWORD_STEP_LINES = 50


def is_sentence_like(line: str) -> bool:
    """Long lines that read like instructions rather than an ingredient.

    >>> is_sentence_like("Stir the sauce until it thickens, about 5 minutes.")
    True
    >>> is_sentence_like("2 cups flour")
    False
    """
    return has_cooking_verb(line) and len(line.split()) > 6


def clean_ingredient_block(block: str) -> List[str]:
    """Split an ingredient block on line breaks, bullets and separators.

    Falls back to commas when nothing else splits the block.
    """
    parts = [clean_text(p) for p in BLOCK_SPLIT_RE.split(block or "")]
    parts = [p for p in parts if p]
    if len(parts) <= 1 and parts and "," in parts[0]:
        parts = [clean_text(p) for p in parts[0].split(",") if clean_text(p)]
    out: List[str] = []
    for part in parts:
        part = part.lstrip("-–—*• ").strip()
        if not part or len(part) > MAX_INGREDIENT_LINE or is_sentence_like(part):
            continue
        out.append(part)
    return out


def cap_chunks(text: str) -> List[str]:
    """Break text into short chunks, splitting long comma lists as well."""
    chunks: List[str] = []
    for piece in CHUNK_SPLIT_RE.split(text or ""):
        piece = clean_text(piece)
        if not piece:
            continue
        if len(piece) > MAX_INFERRED_INGREDIENT and "," in piece and not has_cooking_verb(piece):
            chunks.extend(clean_text(p) for p in piece.split(",") if clean_text(p))
        else:
            chunks.append(piece)
        if len(chunks) >= MAX_CHUNKS:
            break
    return chunks[:MAX_CHUNKS]


def _is_ingredient_chunk(chunk: str) -> bool:
    if len(chunk) > MAX_INFERRED_INGREDIENT or has_cooking_verb(chunk):
        return False
    return has_hard_signal(chunk) or has_soft_signal(chunk)


def infer_ingredients_then_steps(chunks: List[str]) -> tuple[List[str], List[str]]:
    """Ingredient-looking prefix followed by verb-led steps."""
    ingredients: List[str] = []
    steps: List[str] = []
    in_steps = False
    for chunk in chunks:
        if not in_steps and _is_ingredient_chunk(chunk):
            ingredients.append(trim_trailing_punct(chunk))
            continue
        if has_cooking_verb(chunk) and (ingredients or in_steps):
            in_steps = True
            step = trim_trailing_punct(chunk)
            if step:
                steps.append(step)
    return ingredients, steps


def smart_extract_from_caption(text: Optional[str]) -> Optional[PartialRecipe]:
    """Guess ingredients and steps from a caption or description."""
    if not text or not text.strip():
        return None
    body = strip_links_and_hashtags(strip_instagram_boilerplate(text.replace("\r", "")))
    if not body:
        return None

    ingredients: List[str] = []
    steps: List[str] = []
    header = INGREDIENTS_HEADER_RE.search(body)
    if header:
        after = body[header.end() :]
        directions = DIRECTIONS_HEADER_RE.search(after)
        ingredient_block = after[: directions.start()] if directions else after
        ingredients = clean_ingredient_block(ingredient_block)
        if directions:
            steps = split_directions_text(after[directions.end() :])
        else:
            leftovers = [p for p in BLOCK_SPLIT_RE.split(ingredient_block) if is_sentence_like(clean_text(p))]
            steps = split_directions_text("\n".join(leftovers))
        logger.debug("Caption sections: %d ingredients, %d steps", len(ingredients), len(steps))
    else:
        ingredients, steps = infer_ingredients_then_steps(cap_chunks(body))
        logger.debug("Caption inference: %d ingredients, %d steps", len(ingredients), len(steps))

    return PartialRecipe(ingredients=ingredients, steps=steps, caption=body, source="caption")


def extract_near_keyword(text: Optional[str]) -> Optional[PartialRecipe]:
    """Capture lines after a visible "Ingredients" label and a following directions label."""
    if not text:
        return None
    lines = [clean_text(line) for line in text.replace("\r", "").split("\n")]
    lines = [line for line in lines if line]

    start = None
    inline_first = ""
    for idx, line in enumerate(lines):
        match = INGREDIENTS_LINE_RE.match(line)
        if match:
            start = idx
            inline_first = match.group(1)
            break
    if start is None:
        return None

    ingredients: List[str] = []
    if inline_first:
        ingredients.extend(clean_ingredient_block(inline_first))
    idx = start + 1
    while idx < len(lines) and len(ingredients) < MAX_KEYWORD_INGREDIENTS:
        line = lines[idx]
        if DIRECTIONS_LINE_RE.match(line) or STOP_LINE_RE.match(line):
            break
        if len(line) <= MAX_INGREDIENT_LINE and not is_sentence_like(line):
            ingredients.append(line.lstrip("-–—*• ").strip())
        idx += 1

    steps: List[str] = []
    while idx < len(lines) and not DIRECTIONS_LINE_RE.match(lines[idx]):
        idx += 1
    if idx < len(lines):
        body: List[str] = []
        for line in lines[idx + 1 : idx + 1 + MAX_KEYWORD_STEP_LINES]:
            if STOP_LINE_RE.match(line) or INGREDIENTS_LINE_RE.match(line):
                break
            body.append(line)
        steps = split_directions_text("\n".join(body))

    if not ingredients and not steps:
        return None
    return PartialRecipe(ingredients=ingredients, steps=steps, source="visible-text")
