from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from app.errors import NetworkFailure, StorageFailure, VerificationFailure
from app.services.cache import ContentCache
from app.services.content import ContentService
from app.services.playback import PlaybackController, VoiceSettings
from app.services.storage import ContentStorage, KeyValueStore, MemoryBackend


def make_choice(choice_id: int, name: str, is_correct: bool, image: str | None = None) -> dict:
    return {
        "id": choice_id,
        "item": {
            "id": choice_id + 100,
            "image": image or f"http://media/{choice_id}.png",
            "translations": {"ru": {"name": name}},
        },
        "is_correct": is_correct,
    }


def make_question(question_id: int, text: str, choices: list[dict], audio: str | None = None) -> dict:
    return {
        "id": question_id,
        "translations": {"ru": {"text": text, "audio": audio}},
        "choices": choices,
    }


def make_entry(entry_id: int, name: str, questions: list[dict] | None = None, extra_quizzes: int = 0) -> dict:
    quizzes = [] if questions is None else [{"id": entry_id, "translations": {}, "questions": questions}]
    for n in range(extra_quizzes):
        quizzes.append({"id": 1000 + n, "translations": {}, "questions": [make_question(9000 + n, "ignored", [])]})
    return {
        "id": entry_id,
        "image": f"http://media/cat_{entry_id}.png",
        "translations": {"ru": {"name": name}},
        "quizzes": quizzes,
    }


@pytest.fixture
def animals_entry() -> dict:
    """One-question pack used by the end-to-end scenario."""
    return make_entry(
        5,
        "Животные",
        [
            make_question(
                39,
                "Где собака?",
                [make_choice(77, "Собака", True), make_choice(78, "Кошка", False)],
            )
        ],
    )


@pytest.fixture
def catalog(animals_entry: dict) -> list[dict]:
    colors = make_entry(
        7,
        "Цвета  и   формы",
        [
            make_question(50, "Где красный?", [make_choice(1, "Красный", False), make_choice(2, "Синий", True)]),
            make_question(51, "Где круг?", [make_choice(3, "Круг", True), make_choice(4, "Квадрат", False)]),
        ],
    )
    return [animals_entry, colors, make_entry(8, "Пусто")]


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingFetcher:
    """Async catalog fetcher that counts calls and can be told to fail."""

    def __init__(self, catalog: list[dict]) -> None:
        self.catalog = catalog
        self.calls = 0
        self.fail = False

    async def __call__(self) -> list[dict]:
        self.calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise NetworkFailure("offline")
        return copy.deepcopy(self.catalog)


class FailingBackend:
    name = "broken"

    def __init__(self) -> None:
        self.reads = 0
        self.writes = 0

    def read(self, key: str) -> str | None:
        self.reads += 1
        raise StorageFailure("disk on fire")

    def write(self, key: str, data: str) -> None:
        self.writes += 1
        raise StorageFailure("disk on fire")


class OutageBackend(MemoryBackend):
    """Memory backend that fails every call while `down` is set."""

    name = "outage"

    def __init__(self) -> None:
        super().__init__()
        self.down = False

    def read(self, key: str) -> str | None:
        if self.down:
            raise StorageFailure("connection refused")
        return super().read(key)

    def write(self, key: str, data: str) -> None:
        if self.down:
            raise StorageFailure("connection refused")
        super().write(key, data)


class FakeApi:
    """Stands in for ContentApiClient."""

    def __init__(self, catalog: list[dict], verify_reply: dict | None = None, verify_error: bool = False) -> None:
        self.catalog = catalog
        self.verify_reply = verify_reply if verify_reply is not None else {"success": True}
        self.verify_error = verify_error
        self.verified: list[dict[str, Any]] = []

    async def fetch_catalog(self) -> list[dict]:
        return copy.deepcopy(self.catalog)

    async def verify_purchase(self, payload: dict) -> dict:
        self.verified.append(payload)
        if self.verify_error:
            raise VerificationFailure("Verification returned 500")
        return dict(self.verify_reply)

    async def health_check(self) -> dict:
        return {"status": "healthy", "healthy": True}


class FakeAudio:
    def __init__(self, fail: bool = False, duration: float = 0.0) -> None:
        self.fail = fail
        self.duration = duration
        self.played: list[str] = []

    async def play(self, url: str) -> None:
        self.played.append(url)
        if self.duration:
            await asyncio.sleep(self.duration)
        if self.fail:
            raise RuntimeError("decode error")


class FakeSpeech:
    def __init__(self, duration: float = 0.0, fail: bool = False) -> None:
        self.duration = duration
        self.fail = fail
        self.spoken: list[tuple[str, VoiceSettings]] = []
        self.cancels = 0

    async def speak(self, text: str, voice: VoiceSettings) -> None:
        self.spoken.append((text, voice))
        if self.duration:
            await asyncio.sleep(self.duration)
        if self.fail:
            raise RuntimeError("no voices installed")

    def cancel(self) -> None:
        self.cancels += 1


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> ContentStorage:
    return ContentStorage(KeyValueStore(MemoryBackend(), MemoryBackend()))


@pytest.fixture
def fetcher(catalog: list[dict]) -> CountingFetcher:
    return CountingFetcher(catalog)


@pytest.fixture
def cache(fetcher: CountingFetcher, storage: ContentStorage, clock: FakeClock) -> ContentCache:
    return ContentCache(fetcher, owned=storage.load_purchases, free_ids=[5], ttl=300, clock=clock)


@pytest.fixture
def content(cache: ContentCache, storage: ContentStorage) -> ContentService:
    return ContentService(cache, storage)


def make_playback(audio: FakeAudio | None = None, speech: FakeSpeech | None = None) -> PlaybackController:
    return PlaybackController(audio or FakeAudio(), speech or FakeSpeech(), VoiceSettings())
