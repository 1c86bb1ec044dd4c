"""Detached copies of quiz content held by long-lived learner runtimes."""

from __future__ import annotations

from dataclasses import dataclass, field

from livequiz.models import TimingPolicy


@dataclass(slots=True)
class OptionSnapshot:
    id: int
    text: str
    is_correct: bool


@dataclass(slots=True)
class QuestionSnapshot:
    """Question with its options, independent of any database session."""

    id: int
    text: str
    points: int = 1
    time_limit: int | None = None
    options: list[OptionSnapshot] = field(default_factory=list)

    @classmethod
    def from_model(cls, question) -> "QuestionSnapshot":
        return cls(
            id=question.id,
            text=question.text,
            points=question.points or 1,
            time_limit=question.time_limit,
            options=[OptionSnapshot(o.id, o.text, bool(o.is_correct)) for o in question.options],
        )

    def correct_option_id(self) -> int | None:
        return next((o.id for o in self.options if o.is_correct), None)

    def has_option(self, option_id: int | None) -> bool:
        return any(o.id == option_id for o in self.options)


@dataclass(slots=True)
class QuizSnapshot:
    id: int
    title: str
    policy: TimingPolicy
    time_per_question: int | None
    time_total: int | None
    shuffle_questions: bool
    show_answers: bool
    anti_cheat: bool

    @classmethod
    def from_model(cls, quiz) -> "QuizSnapshot":
        return cls(
            id=quiz.id,
            title=quiz.title,
            policy=quiz.policy,
            time_per_question=quiz.time_per_question,
            time_total=quiz.time_total,
            shuffle_questions=bool(quiz.shuffle_questions),
            show_answers=bool(quiz.show_answers),
            anti_cheat=bool(quiz.anti_cheat),
        )
