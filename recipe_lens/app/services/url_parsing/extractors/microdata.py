"""Schema.org microdata (itemprop attributes) recipe extraction."""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.models import PartialRecipe
from recipe_lens.app.services.url_parsing.parsing_utils import (
    clean_text,
    parse_minutes,
    parse_servings,
    strip_step_number,
)

logger = logging.getLogger(__name__)


def _itemprop_text(node) -> str:
    if node is None:
        return ""
    if node.name == "meta":
        return clean_text(node.get("content") or "")
    return clean_text(node.get("content") or node.get("datetime") or node.get_text(" ", strip=True))


def _instruction_steps(nodes) -> List[str]:
    steps: List[str] = []
    for node in nodes:
        children = node.find_all(["li", "p"]) if node.name not in {"li", "p", "meta"} else []
        if children:
            texts = [clean_text(strip_step_number(c.get_text(" ", strip=True))) for c in children]
        else:
            texts = [clean_text(strip_step_number(_itemprop_text(node)))]
        steps.extend(t for t in texts if t)
    return steps


def extract_recipe_from_microdata(html: str, url: str) -> Optional[PartialRecipe]:
    """Read itemprop-tagged recipe fields from the page."""
    soup = BeautifulSoup(html or "", "lxml")
    scope = soup.find(attrs={"itemtype": re.compile(r"schema\.org/Recipe", re.I)}) or soup

    ingredients = [
        _itemprop_text(n)
        for n in scope.find_all(attrs={"itemprop": re.compile(r"^(recipeIngredient|ingredients)$")})
    ]
    ingredients = [i for i in ingredients if i]
    steps = _instruction_steps(scope.find_all(attrs={"itemprop": "recipeInstructions"}))

    if not ingredients and not steps:
        return None

    title_node = scope.find("h1", attrs={"itemprop": "name"}) or scope.find(attrs={"itemprop": "name"})
    image_node = scope.find(attrs={"itemprop": "image"})
    image = None
    if image_node is not None:
        image = image_node.get("src") or image_node.get("content") or image_node.get("href")

    total = scope.find(attrs={"itemprop": "totalTime"})
    servings = scope.find(attrs={"itemprop": "recipeYield"})

    logger.info(
        "Microdata recipe for %s: ingredients=%d, steps=%d", url, len(ingredients), len(steps)
    )
    return PartialRecipe(
        title=_itemprop_text(title_node) or None,
        image=image,
        ingredients=ingredients,
        steps=steps,
        total_time_minutes=parse_minutes(_itemprop_text(total) or None),
        servings=parse_servings(_itemprop_text(servings) or None),
        source="microdata",
    )


def has_microdata_recipe(html: str) -> bool:
    parsed = extract_recipe_from_microdata(html, "")
    return bool(parsed and (parsed.ingredients or parsed.steps))
