import json

from recipe_lens.app.services.url_parsing.title_resolver import (
    best_caption_title,
    clean_title,
    resolve_title,
    score_title_candidate,
)

URL = "https://example.com/post"


def _ld(payload) -> str:
    return f'<script type="application/ld+json">{json.dumps(payload)}</script>'


def test_recipe_json_ld_outranks_meta_and_title_tag():
    html = (
        "<html><head>"
        "<title>Tag Title | Some Site</title>"
        '<meta property="og:title" content="OG Title">'
        + _ld([{"@type": "WebPage", "name": "A Much Longer Page Name"}, {"@type": "Recipe", "name": "Recipe Title"}])
        + "</head></html>"
    )
    assert resolve_title(html, URL) == "Recipe Title"


def test_platform_heading_comes_first():
    html = (
        '<div data-e2e="browse-video-title">Honey Garlic Salmon</div>'
        + _ld({"@type": "Recipe", "name": "Something Else"})
    )
    assert resolve_title(html, URL) == "Honey Garlic Salmon"


def test_placeholder_titles_are_skipped():
    html = (
        '<head><meta property="og:title" content="TikTok - Make Your Day"></head>'
        "<body><h1>Spicy Noodles</h1></body>"
    )
    assert resolve_title(html, URL) == "Spicy Noodles"
    assert resolve_title("<title>TikTok - Make Your Day</title>", URL) is None


def test_section_label_headings_are_not_titles():
    html = "<h1>Ingredients</h1><h2>Tomato Soup</h2>"
    assert resolve_title(html, URL) == "Tomato Soup"


def test_title_tag_is_the_last_resort():
    assert resolve_title("<title>Banana Bread | Best Bakes</title>", URL) == "Banana Bread"
    assert resolve_title("<title>Banana Bread - Allrecipes</title>", URL) == "Banana Bread"
    assert resolve_title("<title>Mac - n - Cheese</title>", URL) == "Mac - n - Cheese"


def test_clean_title_strips_suffixes_and_handles():
    assert clean_title("Lemon Bars | Sally's Baking") == "Lemon Bars"
    assert clean_title("Garlic Shrimp by @chef.mike") == "Garlic Shrimp"
    assert clean_title("Chicken Stir-Fry") == "Chicken Stir-Fry"
    assert clean_title("   ") is None
    assert clean_title("Shrimp Tacos - TikTok") == "Shrimp Tacos"
    assert clean_title("Mac - n - Cheese") == "Mac - n - Cheese"
    assert clean_title("Chili - Slow Cooker Style") == "Chili - Slow Cooker Style"
    assert clean_title("Lemon Bars | Sally's Baking", strip_credits=False) == "Lemon Bars | Sally's Baking"


def test_score_title_candidate():
    assert score_title_candidate("Follow @chef for more") is None
    assert score_title_candidate("Stir in the cream") is None
    assert score_title_candidate("Creamy Tuscan Chicken") > score_title_candidate("2 cups flour")


def test_best_caption_title_picks_dish_name():
    caption = "Follow for more!\nCreamy Tuscan Chicken\nStir in the cream and serve."
    assert best_caption_title(caption) == "Creamy Tuscan Chicken"
