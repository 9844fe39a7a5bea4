import asyncio
import random

import pytest

from conftest import make_bank, make_question
from core.controller import SessionController, SessionState
from core.errors import BackendError, NotFoundError, SessionStateError, ValidationError
from core.timer import MemoryStore, SessionTimer
from models import TestInfo


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeQuestionBank:
    def __init__(self, questions, time_limit: int = 1, questions_count=None, error=None) -> None:
        self.questions = list(questions)
        self.info = TestInfo("t1", "Sample test", time_limit, questions_count)
        self.error = error

    async def get_test(self, test_id: str) -> TestInfo:
        if self.error is not None:
            raise self.error
        return self.info

    async def get_questions(self, test_id: str):
        return list(self.questions)


class FakeRecorder:
    def __init__(self, failures: int = 0) -> None:
        self.calls: list[tuple] = []
        self.records: list[tuple] = []
        self.failures = failures
        self.gate: asyncio.Event | None = None

    async def record_attempt(self, user_id, test_id, correct, total, percentage, completed_at):
        self.calls.append((correct, total, percentage, completed_at))
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            self.failures -= 1
            raise BackendError("Database request failed. Please try again.")
        self.records.append((user_id, test_id, correct, total, percentage, completed_at))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


def _controller(bank, recorder, store, clock, poll_interval: float = 1.0) -> SessionController:
    return SessionController(
        test_id="t1",
        user_id=7,
        question_bank=bank,
        recorder=recorder,
        timer=SessionTimer(store, scope="user-7", clock=clock),
        rng=random.Random(5),
        poll_interval=poll_interval,
    )


def _four_question_bank() -> FakeQuestionBank:
    return FakeQuestionBank(
        [
            make_question("q1", correct_answer="Option 1"),
            make_question("q2", correct_answer="Option 2"),
            make_question("q3", correct_answer="Option 3"),
            make_question("q4", correct_answer="Option 4"),
        ]
    )


@pytest.mark.asyncio
async def test_load_starts_session(store, clock) -> None:
    controller = _controller(_four_question_bank(), FakeRecorder(), store, clock)
    state = await controller.load()

    assert state is SessionState.IN_PROGRESS
    assert len(controller.questions) == 4
    assert set(controller.answers) == {"q1", "q2", "q3", "q4"}
    assert controller.answered_count == 0
    assert controller.remaining() == 60
    assert controller.current_question is controller.questions[0]


@pytest.mark.asyncio
async def test_load_samples_questions_count(store, clock) -> None:
    bank = FakeQuestionBank(make_bank({"A": 6, "B": 6, "C": 6}), questions_count=10)
    controller = _controller(bank, FakeRecorder(), store, clock)
    await controller.load()
    assert len(controller.questions) == 10


@pytest.mark.asyncio
async def test_load_without_questions_is_empty(store, clock) -> None:
    controller = _controller(FakeQuestionBank([]), FakeRecorder(), store, clock)
    assert await controller.load() is SessionState.EMPTY
    assert controller.remaining() == 0
    assert len(store) == 0


@pytest.mark.asyncio
async def test_load_failure_sets_error(store, clock) -> None:
    bank = FakeQuestionBank([], error=NotFoundError("Test not found"))
    controller = _controller(bank, FakeRecorder(), store, clock)

    assert await controller.load() is SessionState.ERROR
    assert controller.error == "Test not found"
    with pytest.raises(SessionStateError):
        await controller.submit()


@pytest.mark.asyncio
async def test_submit_scores_and_records_once(store, clock) -> None:
    recorder = FakeRecorder()
    controller = _controller(_four_question_bank(), recorder, store, clock)
    await controller.load()

    for question_id in ("q1", "q2", "q4"):
        controller.select_answer(question_id, "0")

    result = await controller.submit()

    assert (result.correct, result.total, result.percentage) == (1, 4, 25.0)
    assert controller.state is SessionState.COMPLETED
    assert len(recorder.records) == 1
    assert recorder.records[0][:5] == (7, "t1", 1, 4, 25.0)
    assert controller.timer.deadline("t1") is None

    # submitting again is a no-op returning the stored result
    assert await controller.submit() is result
    assert len(recorder.records) == 1


@pytest.mark.asyncio
async def test_concurrent_submit_records_once(store, clock) -> None:
    recorder = FakeRecorder()
    recorder.gate = asyncio.Event()
    controller = _controller(_four_question_bank(), recorder, store, clock)
    await controller.load()

    first = asyncio.create_task(controller.submit())
    await asyncio.sleep(0)
    assert controller.submitting

    assert await controller.submit() is None

    recorder.gate.set()
    result = await first
    assert result is not None
    assert len(recorder.calls) == 1
    assert not controller.submitting


@pytest.mark.asyncio
async def test_failed_submit_can_be_retried(store, clock) -> None:
    recorder = FakeRecorder(failures=1)
    controller = _controller(_four_question_bank(), recorder, store, clock)
    await controller.load()
    controller.select_answer("q1", "0")

    with pytest.raises(BackendError):
        await controller.submit()

    assert controller.state is SessionState.IN_PROGRESS
    assert controller.error is not None
    assert controller.result is not None
    assert not controller.submitting
    assert controller.timer.deadline("t1") is not None

    result = await controller.submit()
    assert result.correct == 1
    assert controller.state is SessionState.COMPLETED
    assert controller.error is None
    # the retry reports the same attempt
    assert recorder.calls[0] == recorder.calls[1]
    assert len(recorder.records) == 1


@pytest.mark.asyncio
async def test_timer_expiry_submits_once(store, clock) -> None:
    recorder = FakeRecorder()
    controller = _controller(_four_question_bank(), recorder, store, clock)
    await controller.load()

    readings = []
    for _ in range(61):
        clock.advance(1)
        readings.append(await controller.tick())

    assert readings[58] == 1
    assert readings[59] == 0
    assert controller.state is SessionState.COMPLETED
    assert len(recorder.records) == 1
    assert controller.remaining() == 0


@pytest.mark.asyncio
async def test_failed_auto_submit_is_not_repeated(store, clock) -> None:
    recorder = FakeRecorder(failures=1)
    controller = _controller(_four_question_bank(), recorder, store, clock)
    await controller.load()
    clock.advance(120)

    for _ in range(5):
        assert await controller.tick() == 0

    assert len(recorder.calls) == 1
    assert controller.state is SessionState.IN_PROGRESS
    assert controller.error is not None

    await controller.submit()
    assert controller.state is SessionState.COMPLETED


@pytest.mark.asyncio
async def test_navigation_bounds(store, clock) -> None:
    controller = _controller(_four_question_bank(), FakeRecorder(), store, clock)
    await controller.load()

    assert not controller.previous()
    assert controller.current_index == 0
    assert controller.go_to(3)
    assert not controller.next()
    assert controller.current_index == 3
    assert not controller.go_to(-1)
    assert not controller.go_to(4)
    assert controller.current_index == 3


@pytest.mark.asyncio
async def test_answers_survive_navigation(store, clock) -> None:
    controller = _controller(_four_question_bank(), FakeRecorder(), store, clock)
    await controller.load()

    first = controller.current_question.question_id
    controller.select_answer(first, "2")
    controller.next()
    controller.previous()

    assert controller.answers[first].selected_option == "2"
    controller.select_answer(first, "")
    assert controller.answered_count == 0


@pytest.mark.asyncio
async def test_invalid_selection_is_rejected(store, clock) -> None:
    controller = _controller(_four_question_bank(), FakeRecorder(), store, clock)
    await controller.load()

    with pytest.raises(NotFoundError):
        controller.select_answer("missing", "0")
    with pytest.raises(ValidationError):
        controller.select_answer("q1", "4")
    with pytest.raises(ValidationError):
        controller.select_answer("q1", "a")


@pytest.mark.asyncio
async def test_completed_session_is_read_only(store, clock) -> None:
    controller = _controller(_four_question_bank(), FakeRecorder(), store, clock)
    await controller.load()
    await controller.submit()

    with pytest.raises(SessionStateError):
        controller.select_answer("q1", "0")
    with pytest.raises(SessionStateError):
        controller.go_to(1)


@pytest.mark.asyncio
async def test_new_controller_resumes_deadline(store, clock) -> None:
    first = _controller(_four_question_bank(), FakeRecorder(), store, clock)
    await first.load()
    clock.advance(25)

    second = _controller(_four_question_bank(), FakeRecorder(), store, clock)
    await second.load()

    assert second.deadline == first.deadline
    assert second.remaining() == 35


@pytest.mark.asyncio
async def test_polling_submits_when_time_runs_out(store, clock) -> None:
    recorder = FakeRecorder()
    controller = _controller(_four_question_bank(), recorder, store, clock, poll_interval=0.01)
    await controller.load()
    controller.start_polling()
    assert controller.polling

    clock.advance(61)
    for _ in range(100):
        if controller.state is SessionState.COMPLETED:
            break
        await asyncio.sleep(0.01)

    assert controller.state is SessionState.COMPLETED
    assert len(recorder.records) == 1
    assert not controller.polling


@pytest.mark.asyncio
async def test_stop_polling_cancels_task(store, clock) -> None:
    controller = _controller(_four_question_bank(), FakeRecorder(), store, clock, poll_interval=0.01)
    await controller.load()
    controller.start_polling()
    task = controller._poll_task

    controller.stop_polling()
    await asyncio.sleep(0)

    assert not controller.polling
    assert task.cancelled() or task.done()


@pytest.mark.asyncio
async def test_timer_store_access_is_offloaded(store, clock) -> None:
    offloaded: list[str] = []

    async def run_blocking(func, *args):
        offloaded.append(func.__name__)
        return func(*args)

    controller = SessionController(
        test_id="t1",
        user_id=7,
        question_bank=_four_question_bank(),
        recorder=FakeRecorder(),
        timer=SessionTimer(store, scope="user-7", clock=clock),
        rng=random.Random(5),
        run_blocking=run_blocking,
    )
    await controller.load()
    await controller.tick()
    await controller.submit()

    assert offloaded == ["start", "remaining", "clear"]
    assert len(store) == 0
