"""
Hardcoded plant care suggestions.

Static content shown on the suggestions screen. Categories match
case-insensitively; an unknown category yields an empty list.
"""
import random
from dataclasses import dataclass


@dataclass(frozen=True)
class Suggestion:
    id: int
    title: str
    content: str
    category: str
    image: str  # emoji


# ── Suggestion table ──────────────────────────────────────────────────────────

_SUGGESTIONS: list[Suggestion] = [
    Suggestion(1, "Optimal Watering Times",
               "Water your plants early in the morning (6-8 AM) or late in the evening (6-8 PM) "
               "to minimize evaporation and get the most absorption.",
               "Watering", "🌅"),
    Suggestion(2, "Soil Moisture Monitoring",
               "Check soil moisture regularly. Most plants thrive between 40% and 70% soil moisture. "
               "If the soil is dry two inches down, it is time to water.",
               "Monitoring", "🌱"),
    Suggestion(3, "Temperature Control",
               "Most vegetables prefer 18-24°C. Watch the temperature closely and give shade "
               "during hot spells to prevent heat stress.",
               "Environment", "🌡️"),
    Suggestion(4, "Humidity Levels",
               "Keep humidity between 50% and 70%. Too high invites fungal problems; too low causes wilting.",
               "Environment", "💧"),
    Suggestion(5, "Plant Spacing",
               "Proper spacing improves air circulation and slows the spread of disease. "
               "Follow the spacing guidelines for each plant type.",
               "Planting", "📏"),
    Suggestion(6, "Seasonal Adjustments",
               "Adjust watering schedules with the seasons: more water in summer, less in winter.",
               "Seasonal", "🍂"),
    Suggestion(7, "Signs of Overwatering",
               "Yellow leaves, wilting despite wet soil and root rot point to overwatering. "
               "Let the soil dry out between waterings.",
               "Troubleshooting", "⚠️"),
    Suggestion(8, "Signs of Underwatering",
               "Dry, brittle leaves, slow growth and soil pulling away from the pot edge point to "
               "underwatering. Water more often.",
               "Troubleshooting", "🌵"),
    Suggestion(9, "Companion Planting",
               "Some plants grow better together; tomatoes and basil are a classic pair. "
               "Look up companions for your crops.",
               "Planting", "🤝"),
    Suggestion(10, "Nutrient Management",
               "Feed with an organic fertilizer every 2-4 weeks during the growing season and "
               "watch for signs of nutrient deficiency.",
               "Nutrition", "🌿"),
]


# ── Service functions ─────────────────────────────────────────────────────────

def all_suggestions() -> list[Suggestion]:
    return list(_SUGGESTIONS)


def categories() -> list[str]:
    return sorted({s.category for s in _SUGGESTIONS})


def suggestions_in_category(category: str) -> list[Suggestion]:
    normalized = category.strip().lower()
    return [s for s in _SUGGESTIONS if s.category.lower() == normalized]


def random_suggestion() -> Suggestion:
    return random.choice(_SUGGESTIONS)
