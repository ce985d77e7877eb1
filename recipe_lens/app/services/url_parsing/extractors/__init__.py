"""Recipe extractors for the individual extraction strategies."""

from recipe_lens.app.services.url_parsing.extractors.caption import (
    extract_near_keyword,
    smart_extract_from_caption,
)
from recipe_lens.app.services.url_parsing.extractors.heading_block import (
    extract_recipe_from_heading_block,
    extract_recipe_from_visible_text,
)
from recipe_lens.app.services.url_parsing.extractors.meta import (
    extract_meta_description,
    extract_meta_image,
    extract_recipe_from_meta_description,
)
from recipe_lens.app.services.url_parsing.extractors.microdata import extract_recipe_from_microdata
from recipe_lens.app.services.url_parsing.extractors.platform_dom import extract_recipe_from_platform_dom
from recipe_lens.app.services.url_parsing.extractors.platform_state import extract_recipe_from_platform_state
from recipe_lens.app.services.url_parsing.extractors.remote_metadata import (
    extract_recipe_from_remote_metadata,
    fetch_oembed_caption,
)
from recipe_lens.app.services.url_parsing.extractors.schema_org import (
    extract_best_json_ld_caption,
    extract_recipe_from_json_ld_caption,
    extract_recipe_from_schema_org,
)
from recipe_lens.app.services.url_parsing.extractors.site_extras import extract_recipe_from_site_rules

__all__ = [
    "extract_best_json_ld_caption",
    "extract_meta_description",
    "extract_meta_image",
    "extract_near_keyword",
    "extract_recipe_from_heading_block",
    "extract_recipe_from_json_ld_caption",
    "extract_recipe_from_meta_description",
    "extract_recipe_from_microdata",
    "extract_recipe_from_platform_dom",
    "extract_recipe_from_platform_state",
    "extract_recipe_from_remote_metadata",
    "extract_recipe_from_schema_org",
    "extract_recipe_from_site_rules",
    "extract_recipe_from_visible_text",
    "fetch_oembed_caption",
    "smart_extract_from_caption",
]
