"""
Quiz session state machine: NoSession -> InProgress -> Completed.

Every call reads the session from the store, mutates it and writes it back
(or deletes it on completion). Handlers render the returned TurnResult.
"""
import logging
from dataclasses import dataclass
from typing import Callable

from constants import DEFAULT_DIFFICULTY
from data.sessions import UserSession, _delete_session, _load_session, _new_session, _save_session
from data.stats import UserStats, _load_stats, _save_stats, _update_leaderboard
from data.store import KVStore
from questions import Question, generate_question
from scoring import QuizReport, _apply_result, _apply_streak, _build_report

STATUS_QUESTION = "question"
STATUS_COMPLETED = "completed"
STATUS_ANSWERED = "answered"
STATUS_NO_SESSION = "no_session"
STATUS_UNANSWERED = "unanswered"
STATUS_STALE = "stale"


@dataclass
class TurnResult:
    status: str
    session: UserSession | None = None
    question: Question | None = None
    is_correct: bool = False
    report: QuizReport | None = None
    stats: UserStats | None = None


def start_test(
    store: KVStore,
    user_id: int,
    test_type: str,
    generate: Callable[[str], str],
    difficulty: str = DEFAULT_DIFFICULTY,
    display_name: str = "",
) -> TurnResult:
    """Replace any existing session with a fresh one and present its first question."""
    session = _new_session(test_type)
    _save_session(store, user_id, session)
    logging.getLogger(__name__).info(
        "Started %s test (%d questions) for user %s", test_type, session.total_questions, user_id
    )
    return advance(store, user_id, generate, difficulty=difficulty, display_name=display_name)


def advance(
    store: KVStore,
    user_id: int,
    generate: Callable[[str], str],
    difficulty: str = DEFAULT_DIFFICULTY,
    display_name: str = "",
) -> TurnResult:
    session = _load_session(store, user_id)
    if session is None:
        return TurnResult(status=STATUS_NO_SESSION)
    if session.awaiting_answer:
        return TurnResult(status=STATUS_UNANSWERED, session=session, question=session.current_question)

    if session.is_finished:
        return _complete(store, user_id, session, display_name)

    question = generate_question(generate, session.test_type, difficulty)
    session.current_question = question
    session.current_question_index += 1
    _save_session(store, user_id, session)
    return TurnResult(status=STATUS_QUESTION, session=session, question=question)


def _complete(store: KVStore, user_id: int, session: UserSession, display_name: str) -> TurnResult:
    report = _build_report(session.score, session.total_questions)
    stats = _apply_result(session.score, session.total_questions, _load_stats(store, user_id))
    _save_stats(store, user_id, stats)
    _update_leaderboard(
        store,
        {
            "user_id": int(user_id),
            "name": display_name or f"id={user_id}",
            "best_score": report.percentage,
            "estimated_iq": report.estimated_iq,
            "total_tests": stats.total_tests,
        },
    )
    _delete_session(store, user_id)
    logging.getLogger(__name__).info(
        "Completed %s test for user %s: %d/%d (%d%%)",
        session.test_type,
        user_id,
        session.score,
        session.total_questions,
        report.percentage,
    )
    return TurnResult(status=STATUS_COMPLETED, session=session, report=report, stats=stats)


def answer(
    store: KVStore,
    user_id: int,
    selected_index: int,
    question_number: int | None = None,
    session_id: str | None = None,
) -> TurnResult:
    """
    Record the answer to the current question.

    `question_number` is the 1-based number and `session_id` the session
    token carried by the answer button; buttons from another session or an
    earlier question, or a second tap on the same one, are reported as stale
    and change nothing. Every accepted answer also moves the user's streak.
    """
    session = _load_session(store, user_id)
    if session is None:
        return TurnResult(status=STATUS_NO_SESSION)
    question = session.current_question
    if session_id is not None and session_id != session.session_id:
        return TurnResult(status=STATUS_STALE, session=session)
    if question is None or not session.awaiting_answer:
        return TurnResult(status=STATUS_STALE, session=session)
    if question_number is not None and question_number != session.current_question_index:
        return TurnResult(status=STATUS_STALE, session=session)
    if not 0 <= selected_index < len(question.options):
        return TurnResult(status=STATUS_STALE, session=session)

    is_correct = selected_index == question.correct_answer
    if is_correct:
        session.score += 1
    session.questions_answered += 1

    stats = _load_stats(store, user_id)
    if session.test_type == "random":
        stats = _apply_result(session.score, session.total_questions, stats)
        _delete_session(store, user_id)
    else:
        _save_session(store, user_id, session)
    stats = _apply_streak(stats, is_correct)
    _save_stats(store, user_id, stats)

    return TurnResult(
        status=STATUS_ANSWERED,
        session=session,
        question=question,
        is_correct=is_correct,
        stats=stats,
    )


def end_test(store: KVStore, user_id: int) -> TurnResult:
    """Abandon the active test; it is not counted in the test totals."""
    session = _load_session(store, user_id)
    if session is None:
        return TurnResult(status=STATUS_NO_SESSION)
    _delete_session(store, user_id)
    return TurnResult(status=STATUS_COMPLETED, session=session)
