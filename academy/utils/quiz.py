"""
Quiz question banks, server-side grading and the attempt ledger.
"""
import logging

from django.conf import settings
from django.core.exceptions import BadRequest

from ..models import QuizResult

logger = logging.getLogger(__name__)


def validate_questions(questions):
    """
    Check a question bank before it is stored.
    Each question needs text, at least two options and a correctAnswer index inside the options.
    Returns the questions with string ids filled in.
    """
    if not isinstance(questions, list):
        raise BadRequest('questions must be a list')

    cleaned = []
    for index, question in enumerate(questions):
        position = index + 1
        if not isinstance(question, dict):
            raise BadRequest(f'Question {position}: expected an object')
        text = str(question.get('text') or '').strip()
        if not text:
            raise BadRequest(f'Question {position}: text is required')
        options = question.get('options')
        if not isinstance(options, list) or len(options) < 2:
            raise BadRequest(f'Question {position}: at least two options are required')
        if any(not str(option).strip() for option in options):
            raise BadRequest(f'Question {position}: options must not be empty')
        correct = question.get('correctAnswer')
        if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct < len(options):
            raise BadRequest(f'Question {position}: correctAnswer must be an option index between 0 and {len(options) - 1}')

        item = dict(question)
        item['id'] = str(question.get('id') or f'q{position}')
        item['text'] = text
        item['options'] = [str(option) for option in options]
        cleaned.append(item)
    return cleaned


def public_questions(quiz):
    """Questions without the answer key."""
    return [
        {key: value for key, value in question.items() if key != 'correctAnswer'}
        for question in (quiz.questions or [])
    ]


def serialize_quiz(quiz, include_answers=False):
    return {
        'id': quiz.id,
        'courseId': quiz.course_id,
        'title': quiz.title,
        'titleEn': quiz.title_en or quiz.title,
        'description': quiz.description,
        'questions': list(quiz.questions or []) if include_answers else public_questions(quiz),
        'passingScore': quiz.passing_score,
        'afterEpisodeIndex': quiz.after_episode_index,
        'createdAt': quiz.created_at.isoformat() if quiz.created_at else None,
    }


def grade_answers(quiz, answers):
    """
    Grade selected option indices against the stored answer key.
    answers is aligned to the questions; None (or a missing tail) counts as wrong.
    Returns (score, total, percentage) with percentage rounded to an integer.
    """
    if not isinstance(answers, list):
        raise BadRequest('answers must be a list of option indices')
    questions = quiz.questions or []
    if len(answers) > len(questions):
        raise BadRequest(f'Too many answers: quiz has {len(questions)} questions')

    total = len(questions)
    score = 0
    for question, answer in zip(questions, answers):
        if answer is None:
            continue
        if isinstance(answer, bool) or not isinstance(answer, int):
            raise BadRequest('answers must be option indices or null')
        if answer == question.get('correctAnswer'):
            score += 1

    percentage = int(round(score / total * 100)) if total else 0
    return score, total, percentage


def submit_quiz_result(user, quiz, score, total, percentage, answers=None):
    """Append an attempt. No de-duplication and no attempt limit."""
    result = QuizResult.objects.create(
        user=user,
        quiz=quiz,
        score=score,
        total=total,
        percentage=percentage,
        answers=answers or [],
    )
    logger.info("Quiz attempt %s: user %s scored %s%% on %s", result.pk, user.pk, percentage, quiz.pk)
    return result


def submit_quiz_answers(user, quiz, answers):
    """Grade the answers server-side and record the attempt."""
    score, total, percentage = grade_answers(quiz, answers)
    return submit_quiz_result(user, quiz, score, total, percentage, answers=answers)


def client_scores_accepted():
    return bool(settings.ACADEMY.get('ACCEPT_CLIENT_SCORES'))


def validate_client_score(score, total, percentage):
    """Sanity checks for a self-reported score."""
    if total < 0 or score < 0:
        raise BadRequest('score and total must not be negative')
    if score > total:
        raise BadRequest('score must not exceed total')
    if not 0 <= percentage <= 100:
        raise BadRequest('percentage must be between 0 and 100')


def has_passed(result):
    return result.percentage >= result.quiz.passing_score


def serialize_result(result):
    return {
        'id': result.id,
        'userId': result.user_id,
        'quizId': result.quiz_id,
        'quizTitle': result.quiz.title,
        'courseId': result.quiz.course_id,
        'score': result.score,
        'total': result.total,
        'percentage': result.percentage,
        'passed': has_passed(result),
        'completedAt': result.completed_at.isoformat(),
    }


def user_results(user):
    """Attempts of a user, newest first."""
    return QuizResult.objects.filter(user=user).select_related('quiz').order_by('-completed_at', '-id')
