"""Registry of live test sessions, one per user and test."""
import asyncio
import logging
import random

from api.config import TIMER_POLL_INTERVAL_SECONDS
from api.services.attempt_service import DatabaseAttemptRecorder
from api.services.test_service import DatabaseQuestionBank
from api.services.timer_store import DatabaseStore
from api.utils.db_utils import run_db
from core.collaborators import AttemptRecorder, QuestionBank
from core.controller import SessionController, SessionState
from core.errors import NotFoundError
from core.timer import KeyValueStore, SessionTimer

logger = logging.getLogger(__name__)

SessionKey = tuple[int, str]


class SessionManager:
    """
    Keeps SessionControllers alive between requests.

    Starting a session that is already in progress returns it unchanged, so
    a page reload resumes the same questions, answers and deadline. When the
    process restarts the deadline still resumes from the persisted store.
    Overlapping starts for one key share a single load. Finished
    controllers are dropped on the next start.
    """

    def __init__(
        self,
        question_bank: QuestionBank | None = None,
        recorder: AttemptRecorder | None = None,
        store: KeyValueStore | None = None,
        poll_interval: float = TIMER_POLL_INTERVAL_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        self.question_bank = question_bank if question_bank is not None else DatabaseQuestionBank()
        self.recorder = recorder if recorder is not None else DatabaseAttemptRecorder()
        self.store = store if store is not None else DatabaseStore()
        self.poll_interval = poll_interval
        self.rng = rng
        self._sessions: dict[SessionKey, SessionController] = {}
        self._loading: dict[SessionKey, asyncio.Task] = {}

    def _build(self, user_id: int, test_id: str) -> SessionController:
        options = {}
        if isinstance(self.store, DatabaseStore):
            # keep database reads and writes off the event loop
            options["run_blocking"] = run_db
        return SessionController(
            test_id=test_id,
            user_id=user_id,
            question_bank=self.question_bank,
            recorder=self.recorder,
            timer=SessionTimer(self.store, scope=f"user-{user_id}"),
            rng=self.rng,
            poll_interval=self.poll_interval,
            **options,
        )

    def _prune(self) -> None:
        """Forget finished controllers."""
        finished = [
            key
            for key, controller in self._sessions.items()
            if controller.state is not SessionState.IN_PROGRESS
        ]
        for key in finished:
            self._forget(key)

    def _forget(self, key: SessionKey) -> SessionController | None:
        controller = self._sessions.pop(key, None)
        if controller is not None:
            controller.stop_polling()
        return controller

    async def start(self, user_id: int, test_id: str) -> SessionController:
        """Return the running session or load a fresh one."""
        key = (user_id, test_id)
        loading = self._loading.get(key)
        if loading is None:
            controller = self._sessions.get(key)
            if controller is not None and controller.state is SessionState.IN_PROGRESS:
                logger.debug("Resuming session for user %s on test %s", user_id, test_id)
                return controller

            self._prune()
            loading = asyncio.get_running_loop().create_task(self._load(key))
            self._loading[key] = loading
            loading.add_done_callback(lambda task: self._loaded(key, task))
        # overlapping starts share one load; a dropped request must not cancel it
        return await asyncio.shield(loading)

    async def _load(self, key: SessionKey) -> SessionController:
        controller = self._build(*key)
        await controller.load()
        if controller.state is SessionState.IN_PROGRESS:
            self._sessions[key] = controller
            controller.start_polling()
        return controller

    def _loaded(self, key: SessionKey, task: asyncio.Task) -> None:
        if self._loading.get(key) is task:
            del self._loading[key]

    def get(self, user_id: int, test_id: str) -> SessionController:
        controller = self._sessions.get((user_id, test_id))
        if controller is None:
            raise NotFoundError("No active session for this test")
        return controller

    def discard(self, user_id: int, test_id: str) -> bool:
        """Forget a session (leaving the page or finishing); the deadline stays persisted."""
        return self._forget((user_id, test_id)) is not None

    def discard_test(self, test_id: str) -> int:
        """Drop every session of a deleted test."""
        keys = [key for key in self._sessions if key[1] == test_id]
        for key in keys:
            self._forget(key)
        return len(keys)

    def shutdown(self) -> None:
        for controller in self._sessions.values():
            controller.stop_polling()
        self._sessions.clear()
        for task in self._loading.values():
            task.cancel()
        self._loading.clear()

    def __len__(self) -> int:
        return len(self._sessions)
