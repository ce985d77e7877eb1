"""Heuristics that decide whether an extracted candidate is good enough to keep."""

import re
from typing import Iterable, List, Optional

from recipe_lens.app.services.url_parsing.constants import FOOD_WORDS
from recipe_lens.app.services.url_parsing.models import PartialRecipe

UNITISH_RE = re.compile(
    r"\b(cup|cups|tsp|tsps|tbsp|tbsps|teaspoon|teaspoons|tablespoon|tablespoons|"
    r"oz|ounce|ounces|lb|lbs|g|kg|ml|l)\b|\d/\d|\d|[½¼¾⅓⅔⅛]",
    re.I,
)
FOODISH_RE = re.compile(r"\b(" + "|".join(FOOD_WORDS) + r")\b", re.I)
SHORT_LINE_CHARS = 80


def has_hard_signal(line: Optional[str]) -> bool:
    """A quantity or unit token somewhere in the line.

    >>> has_hard_signal("2 cups flour")
    True
    >>> has_hard_signal("a little love")
    False
    """
    return bool(line and UNITISH_RE.search(line))


def has_soft_signal(line: Optional[str]) -> bool:
    """A short line naming a common food.

    >>> has_soft_signal("garlic, minced")
    True
    >>> has_soft_signal("follow for more recipes")
    False
    """
    return bool(line) and len(line) <= SHORT_LINE_CHARS and bool(FOODISH_RE.search(line))


def looks_real_ingredients(lines: Optional[Iterable[str]], allow_soft: bool = False) -> bool:
    """At least two lines, backed by a hard signal or (when allowed) two soft ones."""
    items: List[str] = [line for line in (lines or []) if line and line.strip()]
    if len(items) < 2:
        return False
    if any(has_hard_signal(line) for line in items):
        return True
    if allow_soft:
        return sum(1 for line in items if has_soft_signal(line)) >= 2
    return False


def accepts_recipe_structure(candidate: Optional[PartialRecipe]) -> bool:
    """Structured sources also count a bare step list as a real recipe."""
    if not candidate:
        return False
    return looks_real_ingredients(candidate.ingredients) or len(candidate.steps) >= 1


def accepts_caption(candidate: Optional[PartialRecipe]) -> bool:
    return bool(candidate) and looks_real_ingredients(candidate.ingredients, allow_soft=True)


def accepts_hard_ingredients(candidate: Optional[PartialRecipe]) -> bool:
    return bool(candidate) and looks_real_ingredients(candidate.ingredients)
