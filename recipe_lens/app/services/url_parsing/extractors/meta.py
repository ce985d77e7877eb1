"""<meta> tag description and image lookups."""

import logging
from typing import Optional, Union

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.extractors.caption import smart_extract_from_caption
from recipe_lens.app.services.url_parsing.models import PartialRecipe
from recipe_lens.app.services.url_parsing.parsing_utils import pick_meta, strip_instagram_boilerplate

logger = logging.getLogger(__name__)


def _as_soup(soup_or_html: Union[BeautifulSoup, str, None]) -> BeautifulSoup:
    if isinstance(soup_or_html, BeautifulSoup):
        return soup_or_html
    return BeautifulSoup(soup_or_html or "", "lxml")


def extract_meta_description(soup_or_html: Union[BeautifulSoup, str, None]) -> Optional[str]:
    soup = _as_soup(soup_or_html)
    description = pick_meta(soup, "og:description", "twitter:description", "description")
    if not description:
        return None
    return strip_instagram_boilerplate(description) or None


def extract_meta_image(soup_or_html: Union[BeautifulSoup, str, None]) -> Optional[str]:
    soup = _as_soup(soup_or_html)
    return pick_meta(soup, "og:image", "og:image:url", "og:image:secure_url", "twitter:image", "twitter:image:src")


def extract_recipe_from_meta_description(html: str, url: str) -> Optional[PartialRecipe]:
    description = extract_meta_description(html)
    if not description:
        return None
    parsed = smart_extract_from_caption(description)
    if parsed is None:
        return None
    parsed.source = "meta:description"
    parsed.image = extract_meta_image(html)
    logger.info("Meta description for %s yielded %d ingredients", url, len(parsed.ingredients))
    return parsed
