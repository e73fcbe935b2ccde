"""
Quiz progression state machine

States per question:

    awaiting_selection -> awaiting_submission -> graded_correct | graded_incorrect
        -> awaiting_selection (retry or next question) | session_complete

The session never writes anything itself. ``submit()`` grades and returns a
pending attempt; the caller appends it to the ledger and only then calls
``record()``, so a failed append leaves the session in awaiting_submission.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from campaign_quiz.errors import Conflict, InvalidArgument


class QuizState(str, Enum):
    AWAITING_SELECTION = "awaiting_selection"
    AWAITING_SUBMISSION = "awaiting_submission"
    GRADED_CORRECT = "graded_correct"
    GRADED_INCORRECT = "graded_incorrect"
    SESSION_COMPLETE = "session_complete"


GRADED_STATES = (QuizState.GRADED_CORRECT, QuizState.GRADED_INCORRECT)


@dataclass(frozen=True)
class SessionQuestion:
    id: str
    type: str
    option_count: int
    correct_answers: FrozenSet[int]
    points: int

    @classmethod
    def from_model(cls, question) -> "SessionQuestion":
        return cls(
            id=str(question.id),
            type=question.type,
            option_count=len(question.options or []),
            correct_answers=frozenset(question.correct_answers or []),
            points=question.points or 0,
        )


@dataclass(frozen=True)
class GradedAttempt:
    question_id: str
    selected_answers: Tuple[int, ...]
    is_correct: bool
    points_earned: int
    attempt_number: int
    resolves: bool


def is_correct_selection(selected: Iterable[int], correct: Iterable[int]) -> bool:
    """Exact set equality: no partial credit, no subset or superset matches"""
    return set(selected) == set(correct)


class QuizSession:
    """One participant working through an ordered list of questions"""

    def __init__(self, questions: Sequence[SessionQuestion], max_attempts: int = 2):
        self.questions: List[SessionQuestion] = list(questions)
        self.max_attempts = max_attempts
        self.current_index = 0
        self.attempts = 0
        self.selection: List[int] = []
        self.last_attempt: Optional[GradedAttempt] = None
        self.state = QuizState.AWAITING_SELECTION if self.questions else QuizState.SESSION_COMPLETE

    @classmethod
    def from_history(
        cls,
        questions: Sequence[SessionQuestion],
        history: Iterable[Tuple[str, bool]],
        max_attempts: int = 2,
    ) -> "QuizSession":
        """
        Rebuild a session from earlier (question_id, is_correct) attempts

        A question is resolved once it was answered correctly or used up its
        attempts; the session resumes at the first unresolved question.
        """
        session = cls(questions, max_attempts)
        attempts: Dict[str, int] = {}
        solved = set()
        for question_id, is_correct in history:
            question_id = str(question_id)
            attempts[question_id] = attempts.get(question_id, 0) + 1
            if is_correct:
                solved.add(question_id)

        for index, question in enumerate(session.questions):
            if question.id in solved or attempts.get(question.id, 0) >= max_attempts:
                continue
            session.current_index = index
            session.attempts = attempts.get(question.id, 0)
            session.state = QuizState.AWAITING_SELECTION
            return session

        session.current_index = len(session.questions)
        session.state = QuizState.SESSION_COMPLETE
        return session

    @property
    def current_question(self) -> Optional[SessionQuestion]:
        if self.state == QuizState.SESSION_COMPLETE:
            return None
        return self.questions[self.current_index]

    @property
    def is_complete(self) -> bool:
        return self.state == QuizState.SESSION_COMPLETE

    @property
    def can_retry(self) -> bool:
        return self.state == QuizState.GRADED_INCORRECT and not self.last_attempt.resolves

    def select(self, index: int) -> List[int]:
        """
        Apply one option click

        multiple_choice replaces the selection (radio); select_all toggles
        the option (checkbox).
        """
        if self.state not in (QuizState.AWAITING_SELECTION, QuizState.AWAITING_SUBMISSION):
            raise Conflict(f"Selection is closed in state {self.state.value}")

        question = self.current_question
        if index < 0 or index >= question.option_count:
            raise InvalidArgument(f"Option {index} does not exist")

        if question.type == "multiple_choice":
            self.selection = [index]
        elif index in self.selection:
            self.selection.remove(index)
        else:
            self.selection.append(index)

        self.state = QuizState.AWAITING_SUBMISSION if self.selection else QuizState.AWAITING_SELECTION
        return list(self.selection)

    def submit(self) -> GradedAttempt:
        """Grade the current selection without changing state"""
        if self.state != QuizState.AWAITING_SUBMISSION or not self.selection:
            raise InvalidArgument("Select at least one answer before submitting")

        question = self.current_question
        is_correct = is_correct_selection(self.selection, question.correct_answers)
        attempt_number = self.attempts + 1
        return GradedAttempt(
            question_id=question.id,
            selected_answers=tuple(sorted(self.selection)),
            is_correct=is_correct,
            points_earned=question.points if is_correct else 0,
            attempt_number=attempt_number,
            resolves=is_correct or attempt_number >= self.max_attempts,
        )

    def record(self, attempt: GradedAttempt) -> QuizState:
        """Commit a graded attempt once it is safely in the ledger"""
        if self.state != QuizState.AWAITING_SUBMISSION or attempt.question_id != self.current_question.id:
            raise Conflict("Attempt does not belong to the current question")

        self.attempts = attempt.attempt_number
        self.last_attempt = attempt
        self.state = QuizState.GRADED_CORRECT if attempt.is_correct else QuizState.GRADED_INCORRECT
        return self.state

    def advance(self) -> QuizState:
        """
        Leave the graded state

        An unresolved incorrect attempt returns to the same question with an
        empty selection; anything else moves on.
        """
        if self.state not in GRADED_STATES:
            raise Conflict(f"Nothing to advance from state {self.state.value}")

        self.selection = []
        if not self.last_attempt.resolves:
            self.state = QuizState.AWAITING_SELECTION
            return self.state

        self.current_index += 1
        self.attempts = 0
        if self.current_index >= len(self.questions):
            self.state = QuizState.SESSION_COMPLETE
        else:
            self.state = QuizState.AWAITING_SELECTION
        return self.state
