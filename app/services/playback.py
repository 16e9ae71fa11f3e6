"""
Question audio playback.

One playback slot per controller: starting a new presentation always
releases the previous holder first (cancels its task and any speech in
flight). The slot is released on every exit path: finished, failed,
cancelled.

Presentation order for a task:
1. Recorded audio, when the task has an audio_url
2. Synthesized speech of the question text, when there is no audio
   or the audio fails

Playback problems never propagate; they only clear `is_playing`.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from app.config import get_settings
from app.errors import PlaybackFailure
from app.models import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoiceSettings:
    """Prosody for synthesized speech."""
    lang: str = "ru-RU"
    rate: float = 0.7
    pitch: float = 1.3
    volume: float = 1.0


def default_voice() -> VoiceSettings:
    settings = get_settings()
    return VoiceSettings(
        lang=settings.speech_lang,
        rate=settings.speech_rate,
        pitch=settings.speech_pitch,
        volume=settings.speech_volume,
    )


# =============================================================================
# ENGINE INTERFACES
# =============================================================================

class AudioPlayer(Protocol):
    """Plays an audio file; returns when it ends, raises PlaybackFailure on error."""

    async def play(self, url: str) -> None: ...


class SpeechEngine(Protocol):
    """Speaks text; returns when done, raises on error."""

    async def speak(self, text: str, voice: VoiceSettings) -> None: ...

    def cancel(self) -> None: ...


class SilentAudioPlayer:
    """Audio is rendered by the client; the service only cues it."""

    async def play(self, url: str) -> None:
        if not url:
            raise PlaybackFailure("no audio url")
        logger.debug(f"[Playback] Cue audio {url}")


class LoggingSpeechEngine:
    """
    Stand-in speech engine for the server side.

    Holds the slot for roughly as long as a child-paced reading of the
    text would take, so `is_playing` tracks what the client is doing.
    """

    def __init__(self, chars_per_second: float = 14.0):
        self.chars_per_second = chars_per_second

    def estimate(self, text: str, voice: VoiceSettings) -> float:
        speed = self.chars_per_second * max(voice.rate, 0.1)
        return len(text) / speed

    async def speak(self, text: str, voice: VoiceSettings) -> None:
        logger.debug(f"[Playback] Speak ({voice.lang}, rate={voice.rate}, pitch={voice.pitch}): {text}")
        await asyncio.sleep(self.estimate(text, voice))

    def cancel(self) -> None:
        pass


# =============================================================================
# CONTROLLER
# =============================================================================

class PlaybackController:
    """Owns the playback slot and the `is_playing` flag."""

    def __init__(
        self,
        audio: AudioPlayer,
        speech: SpeechEngine,
        voice: Optional[VoiceSettings] = None
    ):
        self.audio = audio
        self.speech = speech
        self.voice = voice or VoiceSettings()
        self.is_playing = False
        self._current: Optional[asyncio.Task] = None

    def play(self, task: Task) -> Optional[asyncio.Task]:
        """Start presenting a task's question. Must run inside an event loop."""
        self.stop()

        if not task.audio_url and not task.question_text:
            return None

        self.is_playing = True
        job = asyncio.get_running_loop().create_task(self._present(task))
        self._current = job
        job.add_done_callback(self._release)
        return job

    def toggle(self, task: Task) -> Optional[asyncio.Task]:
        """Speaker button: stop when playing, otherwise play."""
        if self.is_playing:
            self.stop()
            return None
        return self.play(task)

    def stop(self) -> None:
        """Cancel whatever holds the slot."""
        job = self._current
        self._current = None
        self.is_playing = False
        self.speech.cancel()
        if job is not None and not job.done():
            job.cancel()

    def _release(self, job: asyncio.Task) -> None:
        if job is self._current:
            self._current = None
            self.is_playing = False

    async def _present(self, task: Task) -> None:
        if task.audio_url:
            try:
                await self._play_audio(task.audio_url)
                return
            except PlaybackFailure as e:
                logger.warning(f"[Playback] Audio failed for task {task.id}, using speech: {e}")

        await self._speak(task.question_text)

    async def _play_audio(self, url: str) -> None:
        """Run the audio player, reporting any engine error as PlaybackFailure."""
        try:
            await self.audio.play(url)
        except (asyncio.CancelledError, PlaybackFailure):
            raise
        except Exception as e:
            raise PlaybackFailure(f"{url}: {e}") from e

    async def _speak(self, text: Optional[str]) -> None:
        if not text:
            return
        try:
            await self.speech.speak(text, self.voice)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"[Playback] Speech failed: {e}")


def build_playback() -> PlaybackController:
    return PlaybackController(SilentAudioPlayer(), LoggingSpeechEngine(), default_voice())
