"""
Quiz session state machine.

One session is one playthrough of a content pack:

    AWAITING_TASK --autoplay--> INPUT_ARMED
         |                          |
         +------- select(i) --------+--> RESULT_SHOWN
                                             |
                          reveal delay       |
              +------------------------------+
              |                              |
        next task                       last task
     (AWAITING_TASK)                   COMPLETED --exit delay--> on_exit()

A pack without tasks stays IDLE forever.

Timers are asyncio tasks tagged with the session generation. Every load()
and close() bumps the generation and cancels pending timers, and a timer
that still wakes up with an old generation does nothing.
"""

import asyncio
import enum
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

from app.config import get_settings
from app.errors import NotFoundFailure
from app.models import ContentPack, Task
from app.services.content import ContentService
from app.services.playback import PlaybackController

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_TASK = "awaiting_task"
    INPUT_ARMED = "input_armed"
    RESULT_SHOWN = "result_shown"
    COMPLETED = "completed"


class QuizSession:
    """
    Drives one pack from the first question to the exit signal.

    Session snapshot:
    {
        "session_id": str,
        "pack": {"id", "slug", "name"} | None,
        "state": str,               # SessionState value
        "current_task": int,
        "total": int,
        "selection": int | None,    # locked choice for the current task
        "is_correct": bool | None,
        "score": int,
        "is_playing": bool,
        "is_completed": bool,
        "show_progress": bool,      # more than one task
        "task": {...} | None        # current Task
    }
    """

    def __init__(
        self,
        playback: PlaybackController,
        on_exit: Optional[Callable[[], None]] = None,
        autoplay_delay: float = 0.5,
        reveal_delay: float = 1.5,
        exit_delay: float = 2.0,
        session_id: Optional[str] = None
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.playback = playback
        self.on_exit = on_exit
        self.autoplay_delay = autoplay_delay
        self.reveal_delay = reveal_delay
        self.exit_delay = exit_delay

        self.pack: Optional[ContentPack] = None
        self.state = SessionState.IDLE
        self.current_task = 0
        self.selection: Optional[int] = None
        self.is_correct: Optional[bool] = None
        self.is_completed = False
        self.score = 0
        self.exited = False
        self.generation = 0
        self._timers: Dict[str, asyncio.Task] = {}

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def tasks(self) -> list:
        return self.pack.tasks if self.pack else []

    @property
    def task(self) -> Optional[Task]:
        if 0 <= self.current_task < len(self.tasks):
            return self.tasks[self.current_task]
        return None

    @property
    def is_playing(self) -> bool:
        return self.playback.is_playing

    # =========================================================================
    # Inputs
    # =========================================================================

    def load(self, pack: Optional[ContentPack]) -> None:
        """Start over with a (new) pack. Must run inside an event loop."""
        self._reset()
        self.pack = pack
        self.exited = False

        if not self.tasks:
            logger.info(f"[Session] {self.session_id}: pack has no tasks, staying idle")
            return

        logger.info(f"[Session] {self.session_id}: loaded {pack.slug} ({len(self.tasks)} tasks)")
        self._enter_task()

    def select(self, index: int) -> bool:
        """
        Lock in an answer for the current task.

        Returns False (and changes nothing) when an answer is already
        locked, when there is no active task, or when the index names no
        choice of the current task.
        """
        if self.state not in (SessionState.AWAITING_TASK, SessionState.INPUT_ARMED):
            return False
        if self.selection is not None or self.task is None:
            return False
        if not 0 <= index < len(self.task.choices):
            logger.debug(f"[Session] {self.session_id}: ignoring choice {index}, no such choice")
            return False

        self._cancel_timer("autoplay")
        self.selection = index
        self.is_correct = self.task.is_correct(index)
        if self.is_correct:
            self.score += 1
        self.state = SessionState.RESULT_SHOWN
        logger.debug(
            f"[Session] {self.session_id}: task {self.current_task} answered {index} "
            f"({'correct' if self.is_correct else 'wrong'})"
        )

        self._schedule("reveal", self.reveal_delay, self._after_reveal)
        return True

    def replay(self) -> bool:
        """Speaker button for the current task."""
        if self.task is None or self.state in (SessionState.IDLE, SessionState.COMPLETED):
            return False
        self.playback.toggle(self.task)
        return True

    def close(self) -> None:
        """Tear down: no timer fires and no audio plays after this."""
        self._teardown()
        logger.debug(f"[Session] {self.session_id}: closed")

    # =========================================================================
    # Transitions
    # =========================================================================

    def _teardown(self) -> None:
        self.generation += 1
        for name in list(self._timers):
            self._cancel_timer(name)
        self.playback.stop()

    def _reset(self) -> None:
        self._teardown()
        self.state = SessionState.IDLE
        self.current_task = 0
        self.selection = None
        self.is_correct = None
        self.is_completed = False
        self.score = 0

    def _enter_task(self) -> None:
        self.state = SessionState.AWAITING_TASK
        self._schedule("autoplay", self.autoplay_delay, self._autoplay)

    async def _autoplay(self) -> None:
        if self.is_completed or self.task is None:
            return
        self.state = SessionState.INPUT_ARMED
        self.playback.play(self.task)

    async def _after_reveal(self) -> None:
        if self.current_task >= len(self.tasks) - 1:
            self.state = SessionState.COMPLETED
            self.is_completed = True
            logger.info(f"[Session] {self.session_id}: completed, score {self.score}/{len(self.tasks)}")
            self._schedule("exit", self.exit_delay, self._exit)
            return

        self.current_task += 1
        self.selection = None
        self.is_correct = None
        self._enter_task()

    async def _exit(self) -> None:
        if self.exited:
            return
        self.exited = True
        self.playback.stop()
        if self.on_exit is not None:
            self.on_exit()

    # =========================================================================
    # Timers
    # =========================================================================

    def _schedule(
        self,
        name: str,
        delay: float,
        callback: Callable[[], Awaitable[None]]
    ) -> None:
        self._cancel_timer(name)
        generation = self.generation

        async def fire():
            await asyncio.sleep(delay)
            if generation != self.generation:
                return
            self._timers.pop(name, None)
            await callback()

        self._timers[name] = asyncio.get_running_loop().create_task(fire())

    def _cancel_timer(self, name: str) -> None:
        timer = self._timers.pop(name, None)
        if timer is not None and not timer.done():
            timer.cancel()

    # =========================================================================
    # Views
    # =========================================================================

    def snapshot(self) -> Dict[str, Any]:
        task = self.task
        return {
            "session_id": self.session_id,
            "pack": {"id": self.pack.id, "slug": self.pack.slug, "name": self.pack.name} if self.pack else None,
            "state": self.state.value,
            "current_task": self.current_task,
            "total": len(self.tasks),
            "selection": self.selection,
            "is_correct": self.is_correct,
            "score": self.score,
            "is_playing": self.is_playing,
            "is_completed": self.is_completed,
            "show_progress": len(self.tasks) > 1,
            "task": task.model_dump() if task and not self.is_completed else None,
        }


class SessionManager:
    """
    In-process registry of live quiz sessions.

    Sessions own running timers, so they live in memory rather than in
    the key-value store. A session leaves the registry when it signals
    exit or is closed.
    """

    def __init__(
        self,
        content: ContentService,
        playback_factory: Callable[[], PlaybackController],
        autoplay_delay: float = 0.5,
        reveal_delay: float = 1.5,
        exit_delay: float = 2.0,
        on_session_exit: Optional[Callable[[QuizSession], None]] = None
    ):
        self.content = content
        self.playback_factory = playback_factory
        self.autoplay_delay = autoplay_delay
        self.reveal_delay = reveal_delay
        self.exit_delay = exit_delay
        self.on_session_exit = on_session_exit
        self.sessions: Dict[str, QuizSession] = {}

    async def start(self, slug: str) -> QuizSession:
        """
        Open a session on a pack.

        Raises:
            NotFoundFailure: no pack exists for the slug
            NotOwnedFailure: the pack is neither free nor purchased
        """
        pack = await self.content.open_pack(slug)

        session_id = uuid.uuid4().hex
        session = QuizSession(
            self.playback_factory(),
            on_exit=lambda: self._finish(session_id),
            autoplay_delay=self.autoplay_delay,
            reveal_delay=self.reveal_delay,
            exit_delay=self.exit_delay,
            session_id=session_id,
        )
        self.sessions[session_id] = session
        session.load(pack)
        return session

    def get(self, session_id: str) -> QuizSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundFailure(f"No active session: {session_id}")
        return session

    def select(self, session_id: str, index: int) -> bool:
        return self.get(session_id).select(index)

    def replay(self, session_id: str) -> bool:
        return self.get(session_id).replay()

    def close(self, session_id: str) -> None:
        session = self.sessions.pop(session_id, None)
        if session is None:
            raise NotFoundFailure(f"No active session: {session_id}")
        session.close()

    def close_all(self) -> None:
        for session in list(self.sessions.values()):
            session.close()
        self.sessions.clear()

    def _finish(self, session_id: str) -> None:
        session = self.sessions.pop(session_id, None)
        if session is None:
            return
        logger.info(f"[Session] {session_id}: exit")
        session.close()
        if self.on_session_exit is not None:
            self.on_session_exit(session)


def build_session_manager(
    content: ContentService,
    playback_factory: Callable[[], PlaybackController]
) -> SessionManager:
    settings = get_settings()
    return SessionManager(
        content,
        playback_factory,
        autoplay_delay=settings.autoplay_delay,
        reveal_delay=settings.reveal_delay,
        exit_delay=settings.exit_delay,
    )
