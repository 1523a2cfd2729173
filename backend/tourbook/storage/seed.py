import logging
from typing import Any, Dict, List

from tourbook.storage.repository import Repository

logger = logging.getLogger(__name__)

# Seed tours carry no reviews, so they start unrated.
SAMPLE_TOURS: List[Dict[str, Any]] = [
    {
        "title": "Karelian Lakes",
        "description": "Clear water and untouched northern forest",
        "location": "Karelia",
        "duration": "3 days",
        "price": 15000,
        "max_people": 8,
        "category": "nature",
        "tags": ["nature", "lakes", "rest"],
        "is_hot": True,
        "included": ["Transfer", "Accommodation", "Meals"],
        "excluded": ["Alcohol", "Personal expenses"],
        "program": "Day 1: Arrival\nDay 2: Lake excursion\nDay 3: Departure",
    },
    {
        "title": "Golden Ring",
        "description": "Historic towns and ancient churches",
        "location": "Vladimir",
        "duration": "5 days",
        "price": 25000,
        "max_people": 12,
        "category": "cultural",
        "tags": ["history", "culture", "churches"],
        "is_hot": False,
        "included": ["Transfer", "Accommodation", "Guided tours"],
        "excluded": ["Meals", "Souvenirs"],
        "program": "Day 1: Vladimir\nDay 2: Suzdal\nDay 3: Yaroslavl\nDay 4: Kostroma\nDay 5: Return",
    },
    {
        "title": "Baikal in Winter",
        "description": "Ice caves and crystal-clear ice",
        "location": "Irkutsk",
        "duration": "7 days",
        "price": 45000,
        "max_people": 6,
        "category": "adventure",
        "tags": ["adventure", "winter", "ice"],
        "is_hot": True,
        "included": ["Flights", "Accommodation", "Meals", "Guided tours"],
        "excluded": ["Insurance"],
        "program": "Day 1: Irkutsk\nDay 2-6: Olkhon island and the ice\nDay 7: Return",
    },
]


def seed_sample_tours(repository: Repository) -> int:
    if repository.list_tours():
        return 0
    for data in SAMPLE_TOURS:
        repository.create_tour({**data, "rating": 0})
    logger.info("Seeded %d sample tours", len(SAMPLE_TOURS))
    return len(SAMPLE_TOURS)
