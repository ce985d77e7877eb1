import asyncio
import json
import time

import httpx
import pytest

from recipe_lens.app.services.url_parsing.confidence import (
    accepts_caption,
    accepts_hard_ingredients,
    accepts_recipe_structure,
    looks_real_ingredients,
)
from recipe_lens.app.services.url_parsing.extractors import caption, heading_block, microdata, platform_dom
from recipe_lens.app.services.url_parsing.extractors import platform_state, remote_metadata, schema_org, site_extras
from recipe_lens.app.services.url_parsing.extractors.meta import extract_meta_description, extract_meta_image
from recipe_lens.app.services.url_parsing.models import PartialRecipe, SiteCategory


def _ld(payload) -> str:
    return f'<script type="application/ld+json">{payload}</script>'


def test_looks_real_ingredients_hard_and_soft_signals():
    assert looks_real_ingredients(["2 cups flour", "salt"])
    assert not looks_real_ingredients(["2 cups flour"])
    assert not looks_real_ingredients(["garlic, minced", "onion"])
    assert looks_real_ingredients(["garlic, minced", "onion"], allow_soft=True)
    assert not looks_real_ingredients(["follow me", "like and subscribe"], allow_soft=True)


def test_acceptance_rules():
    steps_only = PartialRecipe(steps=["Mix everything."])
    soft = PartialRecipe(ingredients=["garlic", "butter"])
    assert accepts_recipe_structure(steps_only)
    assert not accepts_caption(steps_only)
    assert accepts_caption(soft)
    assert not accepts_hard_ingredients(soft)
    assert not accepts_recipe_structure(None)


def test_schema_org_graph_with_how_to_steps():
    payload = {
        "@context": "https://schema.org",
        "@graph": [
            {"@type": "WebPage", "name": "Best Pancakes - My Blog"},
            {
                "@type": ["Recipe", "NewsArticle"],
                "name": "Best Pancakes",
                "image": [{"url": "https://example.com/pancakes.jpg"}],
                "recipeIngredient": ["1 cup flour", "2 tbsp sugar", "1 cup milk"],
                "recipeInstructions": [
                    {"@type": "HowToStep", "text": "Whisk the batter."},
                    {
                        "@type": "HowToSection",
                        "itemListElement": [{"@type": "HowToStep", "text": "Cook on a hot griddle."}],
                    },
                ],
                "prepTime": "PT10M",
                "cookTime": "PT15M",
                "recipeYield": ["4", "4 servings"],
            },
        ],
    }
    html = f"<html><head>{_ld(json.dumps(payload))}</head></html>"

    parsed = schema_org.extract_recipe_from_schema_org(html, "https://example.com/pancakes")
    assert parsed is not None
    assert parsed.title == "Best Pancakes"
    assert parsed.image == "https://example.com/pancakes.jpg"
    assert parsed.ingredients == ["1 cup flour", "2 tbsp sugar", "1 cup milk"]
    assert parsed.steps == ["Whisk the batter.", "Cook on a hot griddle."]
    assert parsed.total_time_minutes == 25
    assert parsed.servings == 4
    assert schema_org.has_structured_recipe(html)


def test_schema_org_recovers_js_assignment_and_trailing_comma():
    assigned = 'window.__recipe = {"@type": "Recipe", "name": "Rice", "recipeIngredient": ["1 cup rice", "2 cups water"]};'
    trailing = '{"@type": "Recipe", "name": "Oats", "recipeIngredient": ["1 cup oats", "2 cups milk"]},'

    first = schema_org.extract_recipe_from_schema_org(_ld(assigned), "https://example.com/a")
    second = schema_org.extract_recipe_from_schema_org(_ld(trailing), "https://example.com/b")

    assert first.title == "Rice"
    assert first.ingredients == ["1 cup rice", "2 cups water"]
    assert second.title == "Oats"


def test_schema_org_recovers_recipe_inside_broken_block():
    broken = (
        '[{"@type": "WebPage", "name": "Page", "broken": },'
        ' {"@type": "Recipe", "name": "Overnight Oats", "recipeIngredient": ["1 cup oats", "1 cup milk"]}]'
    )
    parsed = schema_org.extract_recipe_from_schema_org(_ld(broken), "https://example.com/oats")
    assert parsed is not None
    assert parsed.title == "Overnight Oats"
    assert parsed.ingredients == ["1 cup oats", "1 cup milk"]


def test_json_ld_caption_prefers_ingredient_text():
    payload = {
        "@type": "VideoObject",
        "name": "Quick dinner idea for busy nights",
        "description": "Ingredients: 2 cups rice, 1 tbsp soy sauce, 2 eggs. Directions: Cook the rice. Add the eggs and stir.",
    }
    html = _ld(json.dumps(payload))
    assert schema_org.extract_best_json_ld_caption(html).startswith("Ingredients:")

    parsed = schema_org.extract_recipe_from_json_ld_caption(html, "https://example.com/v")
    assert parsed.ingredients == ["2 cups rice", "1 tbsp soy sauce", "2 eggs."]
    assert parsed.steps == ["Cook the rice", "Add the eggs and stir"]


def test_microdata_recipe():
    html = """
    <div itemscope itemtype="https://schema.org/Recipe">
      <h1 itemprop="name">Micro Muffins</h1>
      <img itemprop="image" src="https://example.com/muffins.jpg">
      <span itemprop="recipeIngredient">2 cups flour</span>
      <span itemprop="recipeIngredient">1 cup blueberries</span>
      <div itemprop="recipeInstructions">
        <ol><li>1. Mix the batter.</li><li>Bake for 20 minutes.</li></ol>
      </div>
      <meta itemprop="totalTime" content="PT25M">
    </div>
    """
    parsed = microdata.extract_recipe_from_microdata(html, "https://example.com/muffins")
    assert parsed.title == "Micro Muffins"
    assert parsed.image == "https://example.com/muffins.jpg"
    assert parsed.ingredients == ["2 cups flour", "1 cup blueberries"]
    assert parsed.steps == ["Mix the batter.", "Bake for 20 minutes."]
    assert parsed.total_time_minutes == 25
    assert microdata.has_microdata_recipe(html)


def test_walk_for_fields_is_bounded_and_cycle_safe():
    node = {"desc": "a caption that is long enough"}
    node["self"] = node
    deep = {"level": {"level": {"level": {"desc": "too deep to be reached"}}}}
    found = platform_state.walk_for_fields({"a": node, "b": deep}, platform_state.is_caption_field, max_depth=3)
    assert found == [("desc", "a caption that is long enough")]


def test_platform_state_caption_from_rehydration_blob():
    blob = {
        "__DEFAULT_SCOPE__": {
            "webapp.video-detail": {
                "itemInfo": {
                    "itemStruct": {
                        "desc": (
                            "Garlic butter pasta\nIngredients: 8 oz pasta, 3 tbsp butter, 4 cloves garlic\n"
                            "Directions: Boil the pasta. Melt the butter and add garlic. Serve hot. #pasta"
                        ),
                    }
                },
                "shareMeta": {"title": "TikTok - Make Your Day"},
            }
        }
    }
    html = (
        '<html><script id="__UNIVERSAL_DATA_FOR_REHYDRATION__" type="application/json">'
        f"{json.dumps(blob)}</script></html>"
    )

    caption_text = platform_state.extract_platform_caption(html, SiteCategory.TIKTOK)
    assert caption_text.startswith("Garlic butter pasta")

    parsed = platform_state.extract_recipe_from_platform_state(html, "https://www.tiktok.com/@c/video/1", SiteCategory.TIKTOK)
    assert parsed.source == "platform-state"
    assert parsed.ingredients == ["8 oz pasta", "3 tbsp butter", "4 cloves garlic"]
    assert parsed.steps == ["Boil the pasta", "Melt the butter and add garlic", "Serve hot"]


def test_platform_state_reads_window_assignment():
    html = (
        "<script>window['SIGI_STATE']={\"ItemModule\":{\"1\":{\"desc\":\"Lemon rice: 1 cup rice, 1 lemon\"}}};"
        "</script>"
    )
    assert platform_state.extract_platform_caption(html) == "Lemon rice: 1 cup rice, 1 lemon"


def test_platform_dom_visible_caption():
    html = """
    <div data-e2e="browse-video-desc">
      <span>Easy chili</span><br>
      <span>Ingredients: 1 lb beef; 1 can beans; 2 tbsp chili powder</span><br>
      <span>Steps: Cook the beef. Add beans and simmer.</span>
    </div>
    """
    parsed = platform_dom.extract_recipe_from_platform_dom(html, "https://www.tiktok.com/@c/video/2", SiteCategory.TIKTOK)
    assert parsed.source == "platform-dom"
    assert parsed.ingredients == ["1 lb beef", "1 can beans", "2 tbsp chili powder"]
    assert parsed.steps == ["Cook the beef", "Add beans and simmer"]


def test_description_key_caption_skips_noise():
    html = (
        '<script>{"desc":"seo_title_for_the_page_that_is_long","description":'
        '"Ingredients: 2 cups rice, 1 tbsp oil. Cook the rice."}</script>'
    )
    assert platform_dom.extract_description_key_caption(html) == "Ingredients: 2 cups rice, 1 tbsp oil. Cook the rice."


def test_caption_inference_without_headers():
    text = "2 cups flour\n1 tsp salt\n3 eggs\nMix everything together.\nBake for 30 minutes."
    parsed = caption.smart_extract_from_caption(text)
    assert parsed.ingredients == ["2 cups flour", "1 tsp salt", "3 eggs"]
    assert parsed.steps == ["Mix everything together", "Bake for 30 minutes"]


def test_caption_strips_links_and_hashtags():
    parsed = caption.smart_extract_from_caption(
        "Ingredients: 1 cup oats, 1 cup milk #breakfast https://example.com/more"
    )
    assert parsed.ingredients == ["1 cup oats", "1 cup milk"]


def test_heading_block_with_wrapper_divs():
    html = """
    <html><body>
      <nav><p>Ingredients</p></nav>
      <h1>Grandma's Chili</h1>
      <div class="wrap"><h3>Ingredients</h3></div>
      <div><div><ul>
        <li>1 lb ground beef</li><li>1 onion, diced</li><li>2 cans kidney beans</li>
        <li>1 can tomato sauce</li><li>2 tbsp chili powder</li>
      </ul></div></div>
      <h3>Directions</h3>
      <ol><li>Cook the beef with the onion.</li><li>Add beans, sauce and chili powder.</li><li>Simmer for 30 minutes.</li></ol>
      <h3>Notes</h3>
      <p>Freezes well.</p>
    </body></html>
    """
    parsed = heading_block.extract_recipe_from_heading_block(html, "https://example.com/chili")
    assert parsed.ingredients == [
        "1 lb ground beef",
        "1 onion, diced",
        "2 cans kidney beans",
        "1 can tomato sauce",
        "2 tbsp chili powder",
    ]
    assert parsed.steps == [
        "Cook the beef with the onion.",
        "Add beans, sauce and chili powder.",
        "Simmer for 30 minutes.",
    ]


def test_heading_block_numbered_paragraph_steps():
    html = """
    <p><strong>Ingredients:</strong></p>
    <p>2 cups rice</p>
    <p>1 tbsp butter</p>
    <p><strong>Method</strong></p>
    <p>1. Rinse the rice.</p>
    <p>2. Cook with the butter.</p>
    """
    parsed = heading_block.extract_recipe_from_heading_block(html, "https://example.com/rice")
    assert parsed.ingredients == ["2 cups rice", "1 tbsp butter"]
    assert parsed.steps == ["Rinse the rice.", "Cook with the butter."]


def test_visible_text_fallback_when_no_heading_markup():
    html = "<div>Ingredients: 2 cups flour<br>1 tsp salt<br>Directions<br>Mix the flour and salt.</div>"
    parsed = heading_block.extract_recipe_from_visible_text(html, "https://example.com/plain")
    assert parsed.ingredients == ["2 cups flour", "1 tsp salt"]
    assert parsed.steps == ["Mix the flour and salt"]


def test_site_rules_for_wprm_host():
    html = """
    <h1>Blog post title</h1>
    <div class="wprm-recipe-name">Crockpot Ribs</div>
    <ul>
      <li class="wprm-recipe-ingredient">2 lbs pork ribs</li>
      <li class="wprm-recipe-ingredient">1 cup bbq sauce</li>
    </ul>
    <div class="wprm-recipe-instruction-text">Season the ribs.</div>
    <div class="wprm-recipe-instruction-text">Cook on low for 8 hours.</div>
    """
    parsed = site_extras.extract_recipe_from_site_rules(
        html, "https://aroundmyfamilytable.com/ribs", "aroundmyfamilytable.com"
    )
    assert parsed.title == "Crockpot Ribs"
    assert parsed.ingredients == ["2 lbs pork ribs", "1 cup bbq sauce"]
    assert parsed.steps == ["Season the ribs.", "Cook on low for 8 hours."]
    assert site_extras.extract_recipe_from_site_rules(html, "https://example.com/x", "example.com") is None


def test_site_rules_for_gordonramsay_method_heading():
    html = """
    <h1>Beef Wellington</h1>
    <aside class="recipe-ingredients"><ul><li>1 beef fillet</li><li>500 g puff pastry</li></ul></aside>
    <h3>Method</h3>
    <p>Sear the beef all over.</p>
    <p>Wrap in pastry and bake.</p>
    """
    parsed = site_extras.extract_recipe_from_site_rules(html, "https://www.gordonramsay.com/w", "www.gordonramsay.com")
    assert parsed.ingredients == ["1 beef fillet", "500 g puff pastry"]
    assert parsed.steps == ["Sear the beef all over.", "Wrap in pastry and bake."]


def test_meta_description_and_image():
    html = """
    <meta property="og:description" content="1,234 likes, 56 comments - chef.anna on May 1, 2024: &quot;Ingredients: 1 cup rice&quot;">
    <meta name="twitter:image" content="https://cdn.example.com/rice.jpg">
    """
    assert extract_meta_description(html) == "Ingredients: 1 cup rice"
    assert extract_meta_image(html) == "https://cdn.example.com/rice.jpg"


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError("error", request=httpx.Request("GET", "https://x"), response=None)

    def json(self):
        return self._payload


@pytest.mark.asyncio
async def test_remote_metadata_reads_oembed_title(monkeypatch):
    calls = []

    class FakeAsyncClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def get(self, url, params=None):
            calls.append((url, params))
            return FakeResponse({"title": "Ingredients: 2 cups rice, 1 tbsp oil. Directions: Cook the rice."})

    monkeypatch.setattr(remote_metadata.httpx, "AsyncClient", FakeAsyncClient)

    parsed = await remote_metadata.extract_recipe_from_remote_metadata(
        "https://www.tiktok.com/@c/video/3", SiteCategory.TIKTOK
    )
    assert calls == [("https://www.tiktok.com/oembed", {"url": "https://www.tiktok.com/@c/video/3"})]
    assert parsed.source == "oembed"
    assert parsed.ingredients == ["2 cups rice", "1 tbsp oil."]


@pytest.mark.asyncio
async def test_remote_metadata_timeout_yields_none(monkeypatch):
    class FakeAsyncClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def get(self, url, params=None):
            raise httpx.ReadTimeout("too slow")

    monkeypatch.setattr(remote_metadata.httpx, "AsyncClient", FakeAsyncClient)

    assert await remote_metadata.fetch_oembed_caption("https://www.tiktok.com/@c/video/4", SiteCategory.TIKTOK) is None
    # No public endpoint for these platforms
    assert await remote_metadata.fetch_oembed_caption("https://www.instagram.com/p/x", SiteCategory.INSTAGRAM) is None


@pytest.mark.asyncio
async def test_remote_metadata_is_bounded_by_wall_clock(monkeypatch):
    class TricklingClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def get(self, url, params=None):
            # Each chunk arrives within the per-read timeout, the whole body never does
            for _ in range(100):
                await asyncio.sleep(0.05)
            return FakeResponse({"title": "too late"})

    monkeypatch.setattr(remote_metadata.httpx, "AsyncClient", TricklingClient)

    started = time.monotonic()
    caption = await remote_metadata.fetch_oembed_caption(
        "https://www.tiktok.com/@c/video/5", SiteCategory.TIKTOK, timeout=0.2
    )

    assert caption is None
    assert time.monotonic() - started < 1.0
