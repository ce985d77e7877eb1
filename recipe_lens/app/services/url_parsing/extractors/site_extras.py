"""Per-host DOM rules for recipe sites whose structured data is missing or unreliable."""

import logging
import re
from typing import Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.models import PartialRecipe
from recipe_lens.app.services.url_parsing.parsing_utils import clean_text, strip_step_number

logger = logging.getLogger(__name__)

METHOD_HEADING_RE = re.compile(r"^\s*(?:method|directions|instructions)\s*:?\s*$", re.I)


def _texts(nodes) -> List[str]:
    texts = [clean_text(node.get_text(" ", strip=True)) for node in nodes]
    return [t for t in texts if t]


def _title(soup: BeautifulSoup) -> Optional[str]:
    heading = soup.find("h1")
    if heading is None:
        return None
    return clean_text(heading.get_text(" ", strip=True)) or None


def _gordonramsay(soup: BeautifulSoup) -> Optional[PartialRecipe]:
    ingredients = _texts(soup.select("aside.recipe-ingredients li"))

    steps: List[str] = []
    instructions = soup.select_one("article.recipe-instructions")
    if instructions is not None:
        items = instructions.find_all("li") or instructions.find_all("p")
        steps = [clean_text(strip_step_number(t)) for t in _texts(items)]
    if not steps:
        for heading in soup.find_all(["h2", "h3", "h4"]):
            if not METHOD_HEADING_RE.match(heading.get_text(" ", strip=True)):
                continue
            for sibling in heading.find_next_siblings():
                if sibling.name in {"h2", "h3", "h4"}:
                    break
                items = [sibling] if sibling.name == "p" else sibling.find_all(["li", "p"])
                steps.extend(clean_text(strip_step_number(t)) for t in _texts(items))
            break

    steps = [s for s in steps if s]
    if not ingredients and not steps:
        return None
    return PartialRecipe(title=_title(soup), ingredients=ingredients, steps=steps, source="site:gordonramsay")


def _wprm(soup: BeautifulSoup) -> Optional[PartialRecipe]:
    """WP Recipe Maker plugin containers."""
    ingredients = _texts(soup.select(".wprm-recipe-ingredient"))
    steps = [clean_text(strip_step_number(t)) for t in _texts(soup.select(".wprm-recipe-instruction-text"))]
    steps = [s for s in steps if s]
    if not ingredients and not steps:
        return None
    name = soup.select_one(".wprm-recipe-name")
    title = clean_text(name.get_text(" ", strip=True)) if name is not None else _title(soup)
    image = None
    img = soup.select_one(".wprm-recipe-image img")
    if img is not None:
        image = img.get("data-lazy-src") or img.get("src")
    return PartialRecipe(title=title or None, image=image, ingredients=ingredients, steps=steps, source="site:wprm")


SITE_RULES: Dict[str, Callable[[BeautifulSoup], Optional[PartialRecipe]]] = {
    "gordonramsay.com": _gordonramsay,
    "aroundmyfamilytable.com": _wprm,
}


def rule_for_host(hostname: Optional[str]) -> Optional[Callable[[BeautifulSoup], Optional[PartialRecipe]]]:
    if not hostname:
        return None
    host = hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    for domain, rule in SITE_RULES.items():
        if host == domain or host.endswith("." + domain):
            return rule
    return None


def extract_recipe_from_site_rules(html: str, url: str, hostname: Optional[str]) -> Optional[PartialRecipe]:
    rule = rule_for_host(hostname)
    if rule is None:
        return None
    parsed = rule(BeautifulSoup(html or "", "lxml"))
    if parsed is not None:
        logger.info(
            "Site rule for %s matched %s: ingredients=%d, steps=%d",
            hostname,
            url,
            len(parsed.ingredients),
            len(parsed.steps),
        )
    return parsed
