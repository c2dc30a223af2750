"""Built-in categories and the keyword heuristic.

The "other" category is the catch-all: the categorization engine never
suggests it and propagation never writes it. Every check for it goes through
``is_other_category``.
"""

OTHER_CATEGORY_ID = "other"
FALLBACK_CATEGORY_ID = "shopping"

CUSTOM_CATEGORY_PREFIX = "custom-"
SYSTEM_CATEGORY_PREFIX = "system-"
SYSTEM_CATEGORIES_KEY = "system_categories"

BUILTIN_CATEGORIES: list[dict] = [
    {"id": "groceries", "name": "Groceries", "color": "#10B981", "icon": "ShoppingCart"},
    {"id": "dining", "name": "Dining Out", "color": "#F59E0B", "icon": "Utensils"},
    {"id": "entertainment", "name": "Entertainment", "color": "#8B5CF6", "icon": "BarChart2"},
    {"id": "transportation", "name": "Transportation", "color": "#3B82F6", "icon": "Car"},
    {"id": "shopping", "name": "Shopping", "color": "#EC4899", "icon": "ShoppingCart"},
    {"id": "travel", "name": "Travel", "color": "#06B6D4", "icon": "Plane"},
    {"id": "housing", "name": "Housing", "color": "#6366F1", "icon": "Home"},
    {"id": "utilities", "name": "Utilities", "color": "#D97706", "icon": "Home"},
    {"id": "healthcare", "name": "Healthcare", "color": "#EF4444", "icon": "Heart"},
    {"id": "education", "name": "Education", "color": "#0EA5E9", "icon": "BookOpen"},
    {"id": "gifts", "name": "Gifts", "color": "#F472B6", "icon": "Gift"},
    {"id": "services", "name": "Services", "color": "#71717A", "icon": "Wrench"},
    {"id": "subscriptions", "name": "Subscriptions", "color": "#9333EA", "icon": "CreditCard"},
    {"id": OTHER_CATEGORY_ID, "name": "Other", "color": "#9CA3AF", "icon": "Globe"},
]

BUILTIN_CATEGORY_IDS = frozenset(c["id"] for c in BUILTIN_CATEGORIES)

# Checked in order; the first category with a keyword contained in the
# lower-cased description wins ("gas" therefore resolves to transportation).
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("groceries", ("grocery", "supermarket", "food", "market", "walmart", "target",
                   "costco", "safeway", "trader", "whole foods")),
    ("dining", ("restaurant", "cafe", "coffee", "bar", "grill", "pizzeria",
                "mcdonalds", "starbucks")),
    ("entertainment", ("cinema", "movie", "theater", "netflix", "spotify", "hulu",
                       "disney+", "game", "concert")),
    ("transportation", ("uber", "lyft", "taxi", "gas", "fuel", "parking", "metro",
                        "transit", "train")),
    ("shopping", ("amazon", "ebay", "store", "shop", "retail", "clothing", "mall")),
    ("travel", ("hotel", "airline", "flight", "airbnb", "booking.com", "expedia", "travel")),
    ("housing", ("rent", "mortgage", "apartment", "home", "lease", "property")),
    ("utilities", ("electric", "water", "gas", "internet", "phone", "cable", "utility")),
    ("healthcare", ("medical", "doctor", "hospital", "pharmacy", "dental", "health", "clinic")),
    ("education", ("school", "university", "college", "tuition", "course", "book", "education")),
    ("gifts", ("gift", "present", "donation", "charity")),
    ("services", ("service", "repair", "maintenance", "cleaning", "insurance")),
    ("subscriptions", ("subscription", "membership", "monthly", "annual")),
]


def is_other_category(category_id: str | None) -> bool:
    return category_id == OTHER_CATEGORY_ID


def categorize_by_keywords(description: str) -> str:
    """Return the first keyword-table category matching the description, else "other"."""
    normalized = (description or "").lower()
    for category_id, keywords in CATEGORY_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return category_id
    return OTHER_CATEGORY_ID


def is_custom_category(category_id: str) -> bool:
    return category_id.startswith(CUSTOM_CATEGORY_PREFIX)
