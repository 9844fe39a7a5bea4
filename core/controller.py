"""
Session controller: drives one test-taking session from load to submit.

States::

    LOADING -> IN_PROGRESS -> COMPLETED
    LOADING -> ERROR  (fetch failure)
    LOADING -> EMPTY  (test has no questions)

COMPLETED, ERROR and EMPTY are terminal. While IN_PROGRESS a polling task
checks the timer every ``poll_interval`` seconds and submits once when it
runs out.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import random
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from core.collaborators import AttemptRecorder, QuestionBank
from core.errors import (
    BackendError,
    NotFoundError,
    SessionStateError,
    TestSessionError,
    ValidationError,
)
from core.sampling import select_questions
from core.scoring import ScoreResult, score
from core.timer import SessionTimer
from models import Question, TestInfo, UserAnswer

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    """Lifecycle state of a test session."""

    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"
    EMPTY = "empty"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def _call_inline(func: Callable[..., Any], *args: Any) -> Any:
    return func(*args)


class SessionController:
    """Orchestrates sampling, timer, scoring and attempt recording."""

    def __init__(
        self,
        test_id: str,
        user_id: int,
        question_bank: QuestionBank,
        recorder: AttemptRecorder,
        timer: SessionTimer,
        rng: random.Random | None = None,
        poll_interval: float = 1.0,
        now: Callable[[], datetime] = _utc_now,
        run_blocking: Callable[..., Awaitable[Any]] = _call_inline,
    ) -> None:
        self.test_id = test_id
        self.user_id = user_id
        self.question_bank = question_bank
        self.recorder = recorder
        self.timer = timer
        self.rng = rng
        self.poll_interval = poll_interval
        self.now = now
        # timer store access may block (database store), so it goes through here
        self.run_blocking = run_blocking

        self.state = SessionState.LOADING
        self.test: TestInfo | None = None
        self.questions: list[Question] = []
        self.answers: dict[str, UserAnswer] = {}
        self.current_index = 0
        self.deadline: int | None = None
        self.result: ScoreResult | None = None
        self.completed_at: datetime | None = None
        self.error: str | None = None

        self._submitting = False
        self._expired = False
        self._poll_task: asyncio.Task | None = None

    # -- loading -----------------------------------------------------------

    async def load(self) -> SessionState:
        """Fetch the test, sample questions and start the timer."""
        if self.state is not SessionState.LOADING:
            return self.state

        try:
            self.test = await self.question_bank.get_test(self.test_id)
            all_questions = await self.question_bank.get_questions(self.test_id)
            if not all_questions:
                logger.info("Test %s has no questions", self.test_id)
                self.state = SessionState.EMPTY
                return self.state

            self.questions = select_questions(
                all_questions, self.test.questions_count, self.rng
            )
            self.answers = {
                question.question_id: UserAnswer(question.question_id)
                for question in self.questions
            }
            self.deadline = await self.run_blocking(
                self.timer.start, self.test_id, self.test.time_limit
            )
        except TestSessionError as exc:
            logger.warning("Failed to load test %s: %s", self.test_id, exc.message)
            self.error = exc.message
            self.state = SessionState.ERROR
            return self.state

        self.state = SessionState.IN_PROGRESS
        logger.info(
            "Session started for test %s (user %s, %d questions)",
            self.test_id,
            self.user_id,
            len(self.questions),
        )
        return self.state

    # -- in progress -------------------------------------------------------

    @property
    def current_question(self) -> Question | None:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self.answers.values() if answer.answered)

    @property
    def submitting(self) -> bool:
        return self._submitting

    def _require_in_progress(self) -> None:
        if self.state is not SessionState.IN_PROGRESS:
            raise SessionStateError(f"Session is {self.state.value}")

    def select_answer(self, question_id: str, option_index: int | str) -> UserAnswer:
        """Replace the selection for a question; ``""`` clears it."""
        self._require_in_progress()

        answer = self.answers.get(question_id)
        if answer is None:
            raise NotFoundError("Question is not part of this session")

        selected = str(option_index).strip()
        if selected:
            question = next(q for q in self.questions if q.question_id == question_id)
            if not selected.isdigit() or int(selected) >= len(question.options):
                raise ValidationError(f"Invalid option index: {option_index}")
            selected = str(int(selected))

        if answer.selected_option != selected:
            answer.selected_option = selected
            # answers changed since the last scoring attempt
            self.result = None
            self.completed_at = None
        return answer

    def go_to(self, index: int) -> bool:
        """Move to a question; out-of-range indices are ignored."""
        self._require_in_progress()
        if 0 <= index < len(self.questions):
            self.current_index = index
            return True
        return False

    def next(self) -> bool:
        return self.go_to(self.current_index + 1)

    def previous(self) -> bool:
        return self.go_to(self.current_index - 1)

    def remaining(self) -> int:
        if self.state is not SessionState.IN_PROGRESS:
            return 0
        return self.timer.remaining(self.test_id)

    # -- submission --------------------------------------------------------

    async def submit(self, auto: bool = False) -> ScoreResult | None:
        """
        Score the session and record the attempt.

        Returns the result, or None when another submission is already in
        flight. Backend failures propagate as ``BackendError``; the guard is
        released and the computed score is kept for the retry.
        """
        if self.state is SessionState.COMPLETED:
            return self.result
        self._require_in_progress()

        if self._submitting:
            logger.debug("Submission already in flight for test %s", self.test_id)
            return None

        self._submitting = True
        try:
            if self.result is None:
                self.result = score(self.questions, self.answers.values())
            percentage = self.result.percentage
            if self.completed_at is None:
                self.completed_at = self.now()

            try:
                await self.recorder.record_attempt(
                    self.user_id,
                    self.test_id,
                    self.result.correct,
                    self.result.total,
                    percentage,
                    self.completed_at,
                )
            except BackendError as exc:
                self.error = exc.message
                logger.warning(
                    "Failed to record attempt for test %s: %s", self.test_id, exc.message
                )
                raise

            try:
                await self.run_blocking(self.timer.clear, self.test_id)
            except BackendError as exc:
                # the attempt is already recorded
                logger.warning(
                    "Failed to clear timer for test %s: %s", self.test_id, exc.message
                )
            self.error = None
            self.state = SessionState.COMPLETED
            self.stop_polling()
            logger.info(
                "%s submission for test %s: %d/%d (%.2f%%)",
                "Automatic" if auto else "Manual",
                self.test_id,
                self.result.correct,
                self.result.total,
                percentage,
            )
            return self.result
        finally:
            self._submitting = False

    # -- timer polling -----------------------------------------------------

    async def tick(self) -> int:
        """Check the timer once; submit automatically the first time it hits 0."""
        if self.state is not SessionState.IN_PROGRESS:
            return 0

        remaining = await self.run_blocking(self.timer.remaining, self.test_id)
        if remaining == 0 and not self._expired:
            self._expired = True
            logger.info("Time is up for test %s", self.test_id)
            try:
                await self.submit(auto=True)
            except TestSessionError as exc:
                logger.error("Automatic submission failed for test %s: %s", self.test_id, exc)
        return remaining

    async def _poll(self) -> None:
        while self.state is SessionState.IN_PROGRESS:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.tick()
            except BackendError as exc:
                logger.warning("Timer check failed for test %s: %s", self.test_id, exc.message)

    def start_polling(self) -> None:
        """Schedule the periodic timer check on the running event loop."""
        if self.state is not SessionState.IN_PROGRESS:
            return
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll())

    def stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is None or task.done():
            return
        loop = task.get_loop()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            # the poll task exits by itself once the state leaves IN_PROGRESS
            if task is not asyncio.current_task():
                task.cancel()
        elif not loop.is_closed():
            loop.call_soon_threadsafe(task.cancel)

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()
