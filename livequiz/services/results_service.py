"""
Results Service
Cross-session results listing for a quiz
"""
from sqlalchemy import func

from livequiz.extensions import db
from livequiz.models import Answer, LiveSession, Participant, Question
from livequiz.services.persistence import PersistenceService
from livequiz.services.scoring_service import ScoringService
from livequiz.utils.helpers import as_utc

SORT_KEYS = ('highest', 'latest', 'session')


class ResultsService:
    """Results generation across every session of a quiz"""

    @staticmethod
    def build_results(quiz_id, sort='highest', query=None, session_ids=None):
        """
        Build one row per participant across the quiz's sessions

        Args:
            sort: 'highest' (percentage desc), 'latest' (completion desc)
                  or 'session' (session start, then name)
            query: case-insensitive substring of the participant name
            session_ids: optional iterable restricting the sessions

        Returns:
            list: dicts with session_code, name, answered, correct,
                  earned_points, total_points, percentage, passed,
                  cheat_attempts, completed_at
        """
        quiz = PersistenceService.get_quiz(quiz_id)
        questions = {q.id: q for q in quiz.questions}
        total_points = quiz.total_points()

        participants = db.session.query(Participant, LiveSession)\
            .join(LiveSession, Participant.session_id == LiveSession.id)\
            .filter(LiveSession.quiz_id == quiz_id)
        if session_ids:
            participants = participants.filter(LiveSession.id.in_(list(session_ids)))
        if query:
            participants = participants.filter(
                func.lower(Participant.name).contains(query.strip().lower())
            )
        participants = participants.all()

        answers_by_participant = {}
        if participants:
            ids = [p.id for p, _ in participants]
            for answer in Answer.query.filter(Answer.participant_id.in_(ids)).all():
                answers_by_participant.setdefault(answer.participant_id, []).append(answer)

        rows = []
        for participant, live_session in participants:
            answers = answers_by_participant.get(participant.id, [])
            earned = ScoringService.earned_points(answers, questions)
            percentage = ScoringService.percentage(earned, total_points)
            rows.append({
                "participant_id": participant.id,
                "session_id": live_session.id,
                "session_code": live_session.code,
                "session_started_at": as_utc(live_session.started_at),
                "name": participant.name,
                "score": participant.score or 0,
                "answered": len(answers),
                "correct": sum(1 for a in answers if a.is_correct),
                "earned_points": earned,
                "total_points": total_points,
                "percentage": percentage,
                "passed": ScoringService.has_passed(percentage, quiz.passing_score),
                "cheat_attempts": participant.cheat_attempts or 0,
                "completed_at": as_utc(participant.completed_at),
            })

        return ResultsService.sort_rows(rows, sort)

    @staticmethod
    def sort_rows(rows, sort='highest'):
        if sort not in SORT_KEYS:
            raise ValueError(f"Unknown sort: {sort!r}")
        if sort == 'highest':
            return sorted(rows, key=lambda r: (-r["percentage"], r["name"].lower()))
        if sort == 'latest':
            completed = [r for r in rows if r["completed_at"] is not None]
            pending = [r for r in rows if r["completed_at"] is None]
            completed.sort(key=lambda r: r["completed_at"], reverse=True)
            return completed + pending
        return sorted(rows, key=lambda r: (r["session_started_at"], r["session_id"], r["name"].lower()))

    @staticmethod
    def summarize(rows):
        """Aggregate figures for a results listing"""
        if not rows:
            return {"participants": 0, "average": 0.0, "pass_rate": 0.0, "flagged": 0}
        return {
            "participants": len(rows),
            "average": round(sum(r["percentage"] for r in rows) / len(rows), 1),
            "pass_rate": round(100.0 * sum(1 for r in rows if r["passed"]) / len(rows), 1),
            "flagged": sum(1 for r in rows if r["cheat_attempts"] > 0),
        }

    @staticmethod
    def question_breakdown(quiz_id):
        """Correct / answered counts per question for a quiz"""
        rows = db.session.query(
            Question.id,
            Question.text,
            func.count(Answer.id).label("answered"),
            func.sum(
                db.case((Answer.is_correct == True, 1), else_=0)  # noqa: E712
            ).label("correct"),
        ).outerjoin(Answer, Answer.question_id == Question.id)\
         .filter(Question.quiz_id == quiz_id)\
         .group_by(Question.id, Question.text, Question.order_index)\
         .order_by(Question.order_index).all()

        return [
            {
                "question_id": row.id,
                "text": row.text,
                "answered": int(row.answered or 0),
                "correct": int(row.correct or 0),
            }
            for row in rows
        ]
