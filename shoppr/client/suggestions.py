"""Category search suggestions, personalized from the shopper's survey."""

import random

from shoppr.schemas.user import PersonalizationProfile

SUGGESTION_LIMIT = 8

BASE_SUGGESTIONS: dict[str, list[str]] = {
    # Electronics
    "493964": ["wireless headphones", "smartphone case", "laptop stand", "wireless charger",
               "bluetooth speaker", "gaming mouse", "tablet accessories", "smart watch"],
    # Clothing, Shoes & Jewelry
    "7141124011": ["sneakers", "casual shirt", "jeans", "dress", "winter jacket", "accessories",
                   "watch", "sunglasses"],
    # Home & Kitchen
    "1063498": ["coffee maker", "kitchen organizer", "bedding set", "home decor", "storage solutions",
                "dinnerware", "cookware", "lighting"],
    # Health & Personal Care
    "3760931": ["skincare routine", "supplements", "fitness tracker", "personal care", "wellness products",
                "beauty tools", "oral care", "hair care"],
    # Sports & Outdoors
    "3375301": ["workout equipment", "outdoor gear", "athletic shoes", "fitness accessories", "camping gear",
                "sports equipment", "activewear", "water bottle"],
    # Books
    "1000": ["bestseller books", "fiction novels", "self-help books", "cookbooks", "textbooks",
             "children's books", "business books", "biography"],
    # Beauty
    "11055981": ["makeup", "skincare", "fragrance", "beauty tools", "nail care", "hair styling", "cosmetics",
                 "beauty accessories"],
    # Toys & Games
    "165795011": ["board games", "educational toys", "action figures", "puzzle games", "outdoor toys",
                  "craft kits", "electronic toys", "building blocks"],
    # Office Products
    "1084128": ["desk organizer", "office supplies", "ergonomic chair", "desk lamp", "notebooks", "stationery",
                "filing solutions", "presentation tools"],
    # Automotive
    "15690151": ["car accessories", "car care", "tools", "automotive parts", "car electronics",
                 "interior accessories", "exterior accessories", "maintenance"],
}

GENERIC_SUGGESTIONS = ["trending items", "popular products", "best sellers", "new arrivals",
                       "top rated", "featured items", "deals", "essentials"]

# Clothing, Beauty, Home & Kitchen
STYLE_CATEGORIES = {"7141124011", "11055981", "1063498"}

MOTIVATION_TERMS = [
    (("quality",), ["high quality", "durable products", "well-reviewed"]),
    (("price", "deal"), ["best deals", "discounted", "sale items"]),
    (("convenience",), ["quick delivery", "easy to use", "convenient"]),
    (("style", "fashion"), ["trendy", "stylish", "fashionable"]),
]

STYLE_TERMS = [
    ("modern", ["modern style", "contemporary"]),
    ("classic", ["classic style", "timeless"]),
    ("casual", ["casual wear", "everyday"]),
    ("formal", ["formal wear", "professional"]),
]

PATTERN_TERMS = [
    ("research", ["best rated", "top reviews", "highly recommended"]),
    ("impulse", ["trending now", "popular today", "hot items"]),
    ("planned", ["essentials", "must-have", "practical"]),
]


def _first_match(value: str, table):
    for needle, terms in table:
        if needle in value:
            return terms
    return []


class SuggestionGenerator:
    """
    Builds up to 8 suggestions per category for a surveyed shopper.

    Results are memoized in ``cache`` (normally ``ClientState.suggestions``,
    so they survive restarts) keyed by category and user.
    """

    def __init__(self, cache: dict[str, list[str]] | None = None, rng: random.Random | None = None):
        self.cache = cache if cache is not None else {}
        self.rng = rng or random.Random()

    @staticmethod
    def cache_key(category_id: str, user_id: str) -> str:
        return f"suggestions-{category_id}-{user_id}"

    def personalize(self, base: list[str], profile: PersonalizationProfile, category_id: str) -> list[str]:
        suggestions = list(base)

        budget = profile.budget.value if profile.budget else ""
        if budget == "budget":
            suggestions = [f"{self.rng.choice(['affordable', 'budget'])} {s}" for s in suggestions]
        elif budget in ("premium", "luxury"):
            suggestions = [f"{self.rng.choice(['premium', 'luxury'])} {s}" for s in suggestions]

        brand = profile.brand_preference.lower()
        if "brand" in brand:
            suggestions += ["brand name products", "popular brands"]
        elif "generic" in brand or "no preference" in brand:
            suggestions += ["generic products", "unbranded items"]

        for motivation in profile.motivations:
            motivation = motivation.lower()
            for needles, terms in MOTIVATION_TERMS:
                if any(n in motivation for n in needles):
                    suggestions += terms
                    break

        if category_id in STYLE_CATEGORIES:
            for style in profile.style_preferences:
                suggestions += _first_match(style.lower(), STYLE_TERMS)

        suggestions += _first_match(profile.shopping_pattern.lower(), PATTERN_TERMS)

        return list(dict.fromkeys(suggestions))[:SUGGESTION_LIMIT]

    def get_suggestions(self, category_id: str, profile: PersonalizationProfile | None, user_id: str) -> list[str]:
        if profile is None:
            return BASE_SUGGESTIONS.get(category_id, GENERIC_SUGGESTIONS[:4])[:6]

        key = self.cache_key(category_id, user_id)
        if key not in self.cache:
            base = BASE_SUGGESTIONS.get(category_id, GENERIC_SUGGESTIONS)
            self.cache[key] = self.personalize(base, profile, category_id)
        return self.cache[key]

    def search_box_suggestions(
        self,
        typed: str,
        category_id: str,
        history: list[str],
        profile: PersonalizationProfile | None,
        user_id: str,
        focused: bool = False,
    ) -> list[tuple[str, str]]:
        """
        Entries for the search box dropdown as ``(query, kind)`` pairs.

        Empty box: up to 4 recent searches, or 4 suggestions when focused and
        there is no history. Typing: up to 3 suggestions containing the text.
        """
        typed = typed.strip().lower()
        if not typed:
            if history:
                return [(q, "history") for q in history[:4]]
            if focused:
                return [(s, "suggestion") for s in self.get_suggestions(category_id, profile, user_id)[:4]]
            return []

        matches = [
            s for s in self.get_suggestions(category_id, profile, user_id)
            if typed in s.lower() and s.lower() != typed
        ]
        return [(s, "suggestion") for s in matches[:3]]
