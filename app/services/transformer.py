"""
Catalog transformation.

Maps raw, locale-keyed catalog entries from the API into the flat
ContentPack / Task / TaskChoice schema. Everything here is pure: no I/O,
inputs are never mutated.

Only the first quiz of an entry is used; a pack is one quiz.
"""

import re
from typing import Any, Iterable, Optional

from app.errors import NotFoundFailure
from app.models import ContentPack, PackSummary, Task, TaskChoice

DEFAULT_LOCALE = "ru"

_WHITESPACE = re.compile(r"\s+")


def slugify(name: str) -> str:
    """Lowercase, whitespace runs collapsed to one hyphen."""
    return _WHITESPACE.sub("-", name.lower())


def _translation(node: Optional[dict], locale: str) -> dict:
    """The node's translation block for one locale, or {}."""
    if not node:
        return {}
    return (node.get("translations") or {}).get(locale) or {}


def entry_name(entry: dict, locale: str = DEFAULT_LOCALE) -> str:
    return _translation(entry, locale).get("name") or ""


def entry_slug(entry: dict, locale: str = DEFAULT_LOCALE) -> str:
    return slugify(entry_name(entry, locale))


def _first_quiz(entry: dict) -> Optional[dict]:
    quizzes = entry.get("quizzes") or []
    return quizzes[0] if quizzes else None


def correct_choice_index(choices: list) -> int:
    """Index of the first choice marked correct, -1 if none is."""
    for index, choice in enumerate(choices):
        if choice.get("is_correct") is True:
            return index
    return -1


def transform_choice(choice: dict, locale: str = DEFAULT_LOCALE) -> TaskChoice:
    item = choice.get("item") or {}
    return TaskChoice(
        id=choice.get("id"),
        text=_translation(item, locale).get("name"),
        image_url=item.get("image"),
        is_correct=choice.get("is_correct") is True,
    )


def transform_question(question: dict, locale: str = DEFAULT_LOCALE) -> Task:
    text = _translation(question, locale)
    choices = question.get("choices") or []
    return Task(
        id=question.get("id"),
        question_text=text.get("text"),
        audio_url=text.get("audio"),
        correct_choice=correct_choice_index(choices),
        choices=[transform_choice(c, locale) for c in choices],
    )


def transform(entry: dict, locale: str = DEFAULT_LOCALE) -> Optional[ContentPack]:
    """
    Build a ContentPack from one catalog entry.

    Returns None when the entry has no quiz. Task order follows the
    quiz's question order.
    """
    quiz = _first_quiz(entry)
    if quiz is None:
        return None

    name = entry_name(entry, locale)
    return ContentPack(
        id=entry.get("id"),
        slug=slugify(name),
        name=name,
        tasks=[transform_question(q, locale) for q in quiz.get("questions") or []],
    )


def find_pack_by_slug(
    catalog: Iterable[dict],
    slug: str,
    locale: str = DEFAULT_LOCALE
) -> Optional[dict]:
    """First catalog entry whose derived slug equals `slug`."""
    for entry in catalog:
        if entry_slug(entry, locale) == slug:
            return entry
    return None


def require_pack_by_slug(
    catalog: Iterable[dict],
    slug: str,
    locale: str = DEFAULT_LOCALE
) -> dict:
    """Like find_pack_by_slug, but raises NotFoundFailure."""
    entry = find_pack_by_slug(catalog, slug, locale)
    if entry is None:
        raise NotFoundFailure(f"Content pack not found: {slug}")
    return entry


def questions_count(entry: dict) -> int:
    quiz = _first_quiz(entry)
    if quiz is None:
        return 0
    return len(quiz.get("questions") or [])


def build_summary(
    entry: dict,
    owned: Iterable[Any] = (),
    free_ids: Iterable[Any] = (),
    locale: str = DEFAULT_LOCALE
) -> PackSummary:
    """
    Menu entry for a catalog entry.

    Free packs always count as purchased; others are purchased when their
    slug is in the owned set.
    """
    name = entry_name(entry, locale)
    slug = slugify(name)
    is_free = entry.get("id") in set(free_ids)
    return PackSummary(
        id=entry.get("id"),
        slug=slug,
        name=name,
        description=f"Викторина: {name}",
        image=entry.get("image"),
        questionsCount=questions_count(entry),
        is_free=is_free,
        is_purchased=is_free or slug in set(owned),
    )
