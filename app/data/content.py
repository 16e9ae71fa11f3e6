"""
Built-in sample content.

Served whenever the catalog API cannot be reached, so the app keeps
working offline and in development.

Structure:
- SAMPLE_CATALOG: raw catalog entries, same nested shape as the API
- SAMPLE_PACK_SLUGS: slugs that resolve to a sample pack on lookup failure
- PURCHASE_MENU: packs offered for sale
"""

import copy
from typing import Optional

MEDIA_BASE = "http://kids.localhost:8765/media/images"


def _item(item_id: int, image: str, name: str) -> dict:
    return {
        "id": item_id,
        "image": f"{MEDIA_BASE}/items/{image}",
        "effect": None,
        "translations": {"ru": {"name": name, "pronunciation": None}},
    }


def _choice(choice_id: int, item: dict, is_correct: bool) -> dict:
    return {"id": choice_id, "item": item, "is_correct": is_correct}


def _question(question_id: int, order: int, text: str, choices: list) -> dict:
    return {
        "id": question_id,
        "image": None,
        "order": order,
        "translations": {"ru": {"text": text, "audio": None}},
        "choices": choices,
    }


# =============================================================================
# SAMPLE CATALOG (raw API shape)
# =============================================================================

_DOG = _item(69, "animals_dog.png", "Собака")
_CAT = _item(80, "animals_cat.png", "Кошка")
_BIRD = _item(81, "animals_bird.png", "Птица")
_BEAR = _item(82, "animals_bear.png", "Медведь")
_HAPPY = _item(83, "emotions_happy_face.png", "Веселое лицо")
_SAD = _item(84, "emotions_sad_face.png", "Грустное лицо")

SAMPLE_CATALOG = [
    {
        "id": 5,
        "image": f"{MEDIA_BASE}/item_categories/animals_lion.png",
        "translations": {"ru": {"name": "Животные"}},
        "quizzes": [
            {
                "id": 5,
                "translations": {"ru": {"name": "Викторина: Животные", "pronunciation": None}},
                "questions": [
                    _question(39, 1, "Где собака?", [
                        _choice(77, _DOG, True),
                        _choice(78, _CAT, False),
                    ]),
                    _question(40, 2, "Где кошка?", [
                        _choice(79, _CAT, True),
                        _choice(80, _BIRD, False),
                    ]),
                    _question(41, 3, "Где птица?", [
                        _choice(81, _BEAR, False),
                        _choice(82, _BIRD, True),
                    ]),
                ],
            }
        ],
    },
    {
        "id": 6,
        "image": f"{MEDIA_BASE}/item_categories/emotions_calm_face.png",
        "translations": {"ru": {"name": "Эмоции"}},
        "quizzes": [
            {
                "id": 6,
                "translations": {"ru": {"name": "Викторина: Эмоции", "pronunciation": None}},
                "questions": [
                    _question(42, 1, "Кто здесь веселый?", [
                        _choice(83, _HAPPY, True),
                        _choice(84, _SAD, False),
                    ]),
                ],
            }
        ],
    },
]

# slug -> index into SAMPLE_CATALOG
SAMPLE_PACK_SLUGS = {
    "животные": 0,
    "эмоции": 1,
}


# =============================================================================
# PURCHASE MENU
# =============================================================================

PURCHASE_MENU = [
    {"id": "emotions", "name": "Эмоции", "price": "99 ₽"},
    {"id": "objects", "name": "Предметы", "price": "99 ₽"},
]


def get_sample_catalog() -> list:
    """Fresh copy of the sample catalog; callers may hold on to it."""
    return copy.deepcopy(SAMPLE_CATALOG)


def get_sample_entry(slug: str) -> Optional[dict]:
    """Raw sample entry for a known sample slug."""
    index = SAMPLE_PACK_SLUGS.get(slug)
    if index is None:
        return None
    return copy.deepcopy(SAMPLE_CATALOG[index])
