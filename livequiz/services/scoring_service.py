"""
Scoring Service
Flat live score plus weighted points for results
"""


class ScoringService:
    """Service for scoring answers"""

    @staticmethod
    def score_increment(is_correct):
        """Live score moves by one per correct answer, regardless of points"""
        return 1 if is_correct else 0

    @staticmethod
    def earned_points(answers, questions_by_id):
        """
        Sum question points over correct answers

        Args:
            answers: iterable of Answer rows
            questions_by_id: {question_id: Question}
        """
        total = 0
        for answer in answers:
            if not answer.is_correct:
                continue
            question = questions_by_id.get(answer.question_id)
            if question is not None:
                total += question.points or 1
        return total

    @staticmethod
    def percentage(earned, total):
        if not total:
            return 0.0
        return round(earned * 100.0 / total, 1)

    @staticmethod
    def has_passed(percentage, passing_score):
        return percentage >= (passing_score or 0)
