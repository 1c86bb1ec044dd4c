"""
Quiz Data Utilities
Parsing of quiz payloads and JSON serialization of models
"""
from flask import current_app

from livequiz.errors import PayloadError
from livequiz.models import TimingPolicy
from livequiz.utils.helpers import format_local


def _as_int(value, field, allow_none=False):
    if value is None or value == '':
        if allow_none:
            return None
        raise PayloadError(f'{field} is required')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise PayloadError(f'{field} must be an integer') from None
    if number < 0:
        raise PayloadError(f'{field} must not be negative')
    return number


def parse_questions(items):
    """
    Validate question payloads
    Each question needs text and at least two options, exactly one correct
    """
    if not isinstance(items, list):
        raise PayloadError('questions must be a list')

    questions = []
    for position, item in enumerate(items, start=1):
        text = (item.get('text') or '').strip()
        if not text:
            raise PayloadError(f'Question {position} has no text')

        options = item.get('options') or []
        if len(options) < 2:
            raise PayloadError(f'Question {position} needs at least two options')
        if sum(1 for o in options if o.get('is_correct')) != 1:
            raise PayloadError(f'Question {position} needs exactly one correct option')
        if any(not (o.get('text') or '').strip() for o in options):
            raise PayloadError(f'Question {position} has an empty option')

        questions.append({
            'text': text,
            'points': _as_int(item.get('points', 1), 'points') or 1,
            'time_limit': _as_int(item.get('time_limit'), 'time_limit', allow_none=True),
            'options': [
                {'text': o['text'].strip(), 'is_correct': bool(o.get('is_correct'))}
                for o in options
            ],
        })
    return questions


def parse_quiz_payload(data, partial=False):
    """
    Turn a JSON body into keyword arguments for the persistence layer

    Args:
        data: request JSON
        partial: PATCH semantics, only present fields are returned
    """
    if not isinstance(data, dict):
        raise PayloadError('JSON object expected')

    values = {}
    if 'title' in data or not partial:
        title = (data.get('title') or '').strip()
        if not title:
            raise PayloadError('title is required')
        values['title'] = title

    if 'description' in data:
        values['description'] = data.get('description')

    if 'timing_policy' in data:
        policy = data.get('timing_policy')
        if policy not in {p.value for p in TimingPolicy}:
            raise PayloadError(f'Unknown timing policy: {policy}')
        values['timing_policy'] = policy

    if 'time_per_question' in data:
        values['time_per_question'] = _as_int(data['time_per_question'], 'time_per_question', allow_none=True)
    if 'time_total' in data:
        values['time_total'] = _as_int(data['time_total'], 'time_total', allow_none=True)
    if 'passing_score' in data:
        score = _as_int(data['passing_score'], 'passing_score')
        if score > 100:
            raise PayloadError('passing_score must be between 0 and 100')
        values['passing_score'] = score

    for flag in ('shuffle_questions', 'show_answers', 'anti_cheat'):
        if flag in data:
            values[flag] = bool(data[flag])

    if 'questions' in data:
        values['questions'] = parse_questions(data['questions'])
    elif not partial:
        values['questions'] = []

    return values


def _timestamp(value):
    return format_local(value, current_app.config.get('TIMEZONE', 'UTC')) if value else None


def quiz_to_dict(quiz, include_answers=True):
    """Proctor view of a quiz; learners never receive is_correct"""
    return {
        'id': quiz.id,
        'title': quiz.title,
        'description': quiz.description,
        'timing_policy': quiz.policy.value,
        'time_per_question': quiz.time_per_question,
        'time_total': quiz.time_total,
        'shuffle_questions': quiz.shuffle_questions,
        'show_answers': quiz.show_answers,
        'anti_cheat': quiz.anti_cheat,
        'passing_score': quiz.passing_score,
        'created_at': _timestamp(quiz.created_at),
        'updated_at': _timestamp(quiz.updated_at),
        'questions': [
            {
                'id': q.id,
                'text': q.text,
                'points': q.points,
                'time_limit': q.time_limit,
                'options': [
                    dict(
                        {'id': o.id, 'text': o.text},
                        **({'is_correct': o.is_correct} if include_answers else {})
                    )
                    for o in q.options
                ],
            }
            for q in quiz.questions
        ],
    }


def participant_to_dict(participant):
    return {
        'id': participant.id,
        'session_id': participant.session_id,
        'name': participant.name,
        'score': participant.score,
        'cheat_attempts': participant.cheat_attempts,
        'current_question': participant.current_question,
        'connected': participant.connected,
        'completed': participant.completed_at is not None,
        'joined_at': _timestamp(participant.joined_at),
        'completed_at': _timestamp(participant.completed_at),
    }


def result_row_to_dict(row):
    """Results rows carry datetimes; render them in the display timezone"""
    data = dict(row)
    data['completed_at'] = _timestamp(row.get('completed_at'))
    data['session_started_at'] = _timestamp(row.get('session_started_at'))
    return data
