import copy

from app.models import ContentPack
from app.services.transformer import (
    build_summary,
    correct_choice_index,
    find_pack_by_slug,
    slugify,
    transform,
)

from conftest import make_choice, make_entry, make_question


def test_slugify_lowercases_and_collapses_whitespace() -> None:
    assert slugify("Животные") == "животные"
    assert slugify("Цвета  и\t формы") == "цвета-и-формы"
    assert slugify("Big Cats") == "big-cats"


def test_transform_end_to_end_entry(animals_entry: dict) -> None:
    pack = transform(animals_entry)

    assert isinstance(pack, ContentPack)
    assert pack.id == 5
    assert pack.slug == "животные"
    assert pack.name == "Животные"
    assert len(pack.tasks) == 1

    task = pack.tasks[0]
    assert task.id == 39
    assert task.question_text == "Где собака?"
    assert task.audio_url is None
    assert task.correct_choice == 0
    assert [c.text for c in task.choices] == ["Собака", "Кошка"]
    assert task.choices[0].image_url == "http://media/77.png"
    assert task.choices[0].is_correct is True
    assert task.choices[1].is_correct is False


def test_transform_is_idempotent_and_does_not_mutate_input(catalog: list[dict]) -> None:
    entry = catalog[1]
    before = copy.deepcopy(entry)

    first = transform(entry)
    second = transform(entry)

    assert first == second
    assert first is not second
    assert entry == before


def test_transform_keeps_question_order(catalog: list[dict]) -> None:
    pack = transform(catalog[1])
    assert [t.id for t in pack.tasks] == [50, 51]
    assert [t.correct_choice for t in pack.tasks] == [1, 0]


def test_transform_without_quiz_returns_none() -> None:
    assert transform(make_entry(8, "Пусто")) is None


def test_transform_uses_only_first_quiz() -> None:
    entry = make_entry(1, "Тест", [make_question(1, "Q", [make_choice(1, "A", True)])], extra_quizzes=2)
    pack = transform(entry)
    assert [t.id for t in pack.tasks] == [1]


def test_missing_correct_choice_is_minus_one() -> None:
    entry = make_entry(1, "Тест", [make_question(1, "Q", [make_choice(1, "A", False), make_choice(2, "B", False)])])
    assert transform(entry).tasks[0].correct_choice == -1


def test_correct_choice_index_picks_first_and_requires_true() -> None:
    choices = [{"is_correct": "yes"}, {"is_correct": True}, {"is_correct": True}]
    assert correct_choice_index(choices) == 1
    assert correct_choice_index([]) == -1


def test_transform_reads_audio_url() -> None:
    entry = make_entry(1, "Тест", [make_question(1, "Q", [], audio="http://media/q1.mp3")])
    assert transform(entry).tasks[0].audio_url == "http://media/q1.mp3"


def test_find_pack_by_slug_round_trips_generated_slug(catalog: list[dict]) -> None:
    for entry in catalog:
        name = entry["translations"]["ru"]["name"]
        assert find_pack_by_slug(catalog, slugify(name)) is entry


def test_find_pack_by_slug_missing(catalog: list[dict]) -> None:
    assert find_pack_by_slug(catalog, "динозавры") is None
    assert find_pack_by_slug([], "животные") is None


def test_build_summary_free_and_owned(catalog: list[dict]) -> None:
    free = build_summary(catalog[0], owned=[], free_ids=[5])
    assert free.slug == "животные"
    assert free.description == "Викторина: Животные"
    assert free.questionsCount == 1
    assert free.is_free is True
    assert free.is_purchased is True

    locked = build_summary(catalog[1], owned=[], free_ids=[5])
    assert locked.questionsCount == 2
    assert locked.is_free is False
    assert locked.is_purchased is False

    owned = build_summary(catalog[1], owned=["цвета-и-формы"], free_ids=[5])
    assert owned.is_purchased is True


def test_build_summary_without_quiz_counts_zero(catalog: list[dict]) -> None:
    assert build_summary(catalog[2]).questionsCount == 0
