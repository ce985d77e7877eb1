import pytest

from recipe_lens.app.services.url_parsing.ingredient_normalizer import (
    is_section_header,
    normalize_ingredient_block,
    normalize_ingredient_lines,
    parse_ingredient_line,
    peel_salt_pepper_tail,
    sanitize_ingredient_lines,
    split_on_amounts,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2 tbsp butter", "2 tablespoons butter"),
        ("1 tsp vanilla", "1 teaspoon vanilla"),
        ("1/2 cup sugar", "1/2 cup sugar"),
        ("3 c. milk", "3 cups milk"),
        ("1 lb chicken thighs", "1 pound chicken thighs"),
        ("<b>6</b> TBSP hot sauce", "6 tablespoons hot sauce"),
        ("1½ cups milk", "1 1/2 cups milk"),
        ("pinch of salt", "pinch of salt"),
        ("2 jalapenos, diced", "2 jalapenos, diced"),
        ("2 cloves garlic, minced", "2 cloves garlic, minced"),
        ("1 cup shredded cheese (optional)", "1 cup shredded cheese (optional)"),
        ("1 to 2 cups broth", "1 to 2 cups broth"),
    ],
)
def test_canonical_lines(raw, expected):
    assert normalize_ingredient_lines([raw]) == [expected]


def test_parse_ingredient_line_fields():
    parsed = parse_ingredient_line("2 Tbsp. olive oil, melted")
    assert parsed.quantity == "2"
    assert parsed.unit == "tablespoon"
    assert parsed.item == "olive oil"
    assert parsed.note == "melted"
    assert parsed.canonical == "2 tablespoons olive oil, melted"


def test_salt_and_pepper_are_merged():
    lines = normalize_ingredient_lines(["1 lb chicken", "Salt", "Pepper, fresh"])
    assert lines == ["1 pound chicken", "Salt and pepper to taste"]


def test_salt_and_pepper_tail_is_peeled():
    assert peel_salt_pepper_tail("1 tbsp olive oil, salt and pepper to taste") == [
        "1 tbsp olive oil",
        "Salt and pepper to taste",
    ]
    # A named salt is an ingredient, not a tail
    assert peel_salt_pepper_tail("Sea salt to taste") == ["Sea salt to taste"]


def test_duplicates_collapse_case_insensitively():
    assert normalize_ingredient_lines(["2 eggs", "2 Eggs"]) == ["2 eggs"]
    assert normalize_ingredient_lines(["Egg", "egg"]) == ["Egg"]


def test_run_on_line_splits_on_new_amounts():
    assert split_on_amounts("2 cups flour 1 tsp salt") == ["2 cups flour", "1 tsp salt"]
    assert normalize_ingredient_lines(["2 cups flour 1 tsp salt"]) == ["2 cups flour", "1 teaspoon salt"]


def test_ranges_and_parentheticals_do_not_split():
    assert split_on_amounts("1 to 2 cups broth") == ["1 to 2 cups broth"]
    assert split_on_amounts("1 can (14 oz) tomatoes") == ["1 can (14 oz) tomatoes"]


def test_section_headers_are_dropped():
    assert is_section_header("For the sauce:")
    assert is_section_header("Ingredients:")
    assert not is_section_header("2 cups flour")
    assert normalize_ingredient_lines(["For the sauce:", "1 cup tomato sauce"]) == ["1 cup tomato sauce"]


def test_normalizing_twice_changes_nothing():
    raw = [
        "- 2 tbsp butter",
        "1½ cups milk",
        "3 eggs",
        "1 cup cheese (optional)",
        "2 cloves garlic, minced",
        "Salt",
        "black pepper",
        "2 cups flour 1 tsp baking powder",
    ]
    once = normalize_ingredient_lines(raw)
    assert normalize_ingredient_lines(once) == once
    assert "Salt and pepper to taste" in once


def test_block_splits_on_separators():
    assert normalize_ingredient_block("2 cups rice; 1 tbsp oil • 1 onion") == [
        "2 cups rice",
        "1 tablespoon oil",
        "1 onion",
    ]


def test_sanitize_keeps_wording_but_cleans_markup():
    assert sanitize_ingredient_lines(["- **2 cups flour**", "For the sauce:", "/2 cup sugar", "1 cup milk)"]) == [
        "2 cups flour",
        "1/2 cup sugar",
        "1 cup milk",
    ]
