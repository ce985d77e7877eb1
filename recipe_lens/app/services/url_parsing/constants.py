"""Static lookup tables shared by the extractors and the normalizer."""

FRACTION_MAP = {
    "¼": "1/4",
    "½": "1/2",
    "¾": "3/4",
    "⅐": "1/7",
    "⅑": "1/9",
    "⅒": "1/10",
    "⅓": "1/3",
    "⅔": "2/3",
    "⅕": "1/5",
    "⅖": "2/5",
    "⅗": "3/5",
    "⅘": "4/5",
    "⅙": "1/6",
    "⅚": "5/6",
    "⅛": "1/8",
    "⅜": "3/8",
    "⅝": "5/8",
    "⅞": "7/8",
}

FRACTION_CHARS = "".join(FRACTION_MAP.keys())

# Canonical singular unit for every spelling we accept.
UNIT_ALIASES = {
    "t": "teaspoon",
    "tsp": "teaspoon",
    "tsps": "teaspoon",
    "teaspoon": "teaspoon",
    "teaspoons": "teaspoon",
    "tbsp": "tablespoon",
    "tbsps": "tablespoon",
    "tbs": "tablespoon",
    "tbl": "tablespoon",
    "tablespoon": "tablespoon",
    "tablespoons": "tablespoon",
    "c": "cup",
    "cup": "cup",
    "cups": "cup",
    "oz": "ounce",
    "ounce": "ounce",
    "ounces": "ounce",
    "lb": "pound",
    "lbs": "pound",
    "pound": "pound",
    "pounds": "pound",
    "g": "gram",
    "gram": "gram",
    "grams": "gram",
    "kg": "kilogram",
    "kilogram": "kilogram",
    "kilograms": "kilogram",
    "ml": "milliliter",
    "milliliter": "milliliter",
    "milliliters": "milliliter",
    "l": "liter",
    "liter": "liter",
    "liters": "liter",
    "litre": "liter",
    "litres": "liter",
    "pinch": "pinch",
    "pinches": "pinch",
    "dash": "dash",
    "dashes": "dash",
    "clove": "clove",
    "cloves": "clove",
    "can": "can",
    "cans": "can",
    "stick": "stick",
    "sticks": "stick",
    "slice": "slice",
    "slices": "slice",
    "fl oz": "fluid_ounce",
    "floz": "fluid_ounce",
    "fluid ounce": "fluid_ounce",
    "fluid ounces": "fluid_ounce",
}

UNIT_PLURALS = {
    "milliliter": "milliliters",
    "liter": "liters",
    "ounce": "ounces",
    "gram": "grams",
    "kilogram": "kilograms",
    "pound": "pounds",
    "teaspoon": "teaspoons",
    "tablespoon": "tablespoons",
    "cup": "cups",
    "pinch": "pinches",
    "dash": "dashes",
    "clove": "cloves",
    "can": "cans",
    "stick": "sticks",
    "slice": "slices",
    "fluid_ounce": "fl oz",
}

# Displayed as-is when singular.
UNIT_SINGULAR_DISPLAY = {
    "fluid_ounce": "fl oz",
}

TRAILING_NOTE_WORDS = (
    "diced",
    "chopped",
    "minced",
    "shredded",
    "grated",
    "softened",
    "melted",
    "room temperature",
    "to taste",
    "optional",
)

FOOD_WORDS = (
    "salt",
    "pepper",
    "flour",
    "sugar",
    "butter",
    "oil",
    "garlic",
    "onion",
    "egg",
    "eggs",
    "cheese",
    "cream",
    "milk",
    "vanilla",
    "baking",
    "chicken",
    "beef",
    "pork",
    "tomato",
    "tomatoes",
    "lemon",
    "lime",
    "rice",
    "pasta",
    "jalapeno",
    "jalapeño",
    "oregano",
    "seasoning",
    "powder",
    "jam",
    "broth",
    "basil",
    "thyme",
)

COOKING_VERBS = (
    "preheat",
    "heat",
    "mix",
    "stir",
    "combine",
    "whisk",
    "bake",
    "sear",
    "cook",
    "transfer",
    "add",
    "pour",
    "let",
    "rest",
    "serve",
    "season",
    "fold",
    "press",
    "slice",
    "cut",
    "boil",
    "simmer",
    "broil",
    "grill",
    "cool",
    "chop",
    "place",
    "remove",
    "roast",
    "fry",
)

SECTION_LABELS = {
    "ingredients",
    "ingredient",
    "directions",
    "direction",
    "instructions",
    "instruction",
    "method",
    "steps",
    "step",
    "notes",
    "equipment",
    "nutrition",
    "preparation",
}

PLACEHOLDER_TITLES = {
    "tiktok",
    "tiktok - make your day",
    "tiktok – make your day",
    "instagram",
    "login • instagram",
    "facebook",
    "log into facebook",
    "youtube",
    "pinterest",
}

# Names that show up as " - Name" title suffixes
SITE_TITLE_NAMES = (
    "tiktok",
    "instagram",
    "facebook",
    "youtube",
    "pinterest",
    "allrecipes",
    "food network",
    "food.com",
    "epicurious",
    "bon appetit",
    "bon appétit",
    "serious eats",
    "simply recipes",
    "delish",
    "tasty",
    "taste of home",
    "myrecipes",
    "eatingwell",
    "bbc good food",
    "betty crocker",
    "king arthur baking",
    "nyt cooking",
    "budget bytes",
    "skinnytaste",
    "the kitchn",
    "minimalist baker",
    "cookie and kate",
    "pinch of yum",
    "recipetin eats",
    "sally's baking addiction",
    "smitten kitchen",
    "half baked harvest",
    "gimme some oven",
    "damn delicious",
    "love and lemons",
    "the pioneer woman",
    "once upon a chef",
    "natasha's kitchen",
    "yummly",
    "food52",
    "just one cookbook",
    "gordon ramsay",
    "jamie oliver",
    "martha stewart",
    "southern living",
    "spend with pennies",
)

PLATFORM_DOMAINS = {
    "tiktok.com": "tiktok",
    "instagram.com": "instagram",
    "facebook.com": "facebook",
    "fb.com": "facebook",
    "fb.watch": "facebook",
}

SOCIAL_DOMAINS = (
    "tiktok.com",
    "instagram.com",
    "facebook.com",
    "fb.com",
    "pinterest.com",
    "youtube.com",
)

KNOWN_RECIPE_SITES = (
    "allrecipes.com",
    "food.com",
    "foodnetwork.com",
    "epicurious.com",
    "bonappetit.com",
    "seriouseats.com",
    "simplyrecipes.com",
    "delish.com",
    "tasty.co",
    "tasteofhome.com",
    "myrecipes.com",
    "eatingwell.com",
    "bbcgoodfood.com",
    "bettycrocker.com",
    "pillsbury.com",
    "kingarthurbaking.com",
    "cooking.nytimes.com",
    "budgetbytes.com",
    "skinnytaste.com",
    "thekitchn.com",
    "minimalistbaker.com",
    "cookieandkate.com",
    "pinchofyum.com",
    "recipetineats.com",
    "sallysbakingaddiction.com",
    "smittenkitchen.com",
    "halfbakedharvest.com",
    "gimmesomeoven.com",
    "damndelicious.net",
    "loveandlemons.com",
    "thepioneerwoman.com",
    "onceuponachef.com",
    "natashaskitchen.com",
    "yummly.com",
    "food52.com",
    "justonecookbook.com",
    "maangchi.com",
    "gordonramsay.com",
    "aroundmyfamilytable.com",
    "jamieoliver.com",
    "marthastewart.com",
    "southernliving.com",
    "spendwithpennies.com",
    "tastesbetterfromscratch.com",
    "thewoksoflife.com",
    "101cookbooks.com",
    "bbc.co.uk/food",
    "taste.com.au",
)

TIKTOK_OEMBED_URL = "https://www.tiktok.com/oembed"
