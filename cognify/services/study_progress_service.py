"""Pure helpers for quiz scoring, flashcard mastery and study streaks."""

from datetime import date, timedelta

MIN_MASTERY_LEVEL = 0
MAX_MASTERY_LEVEL = 5
REVIEW_KNOWN = 'known'
REVIEW_LEARNING = 'learning'
REVIEW_RESULTS = {REVIEW_KNOWN, REVIEW_LEARNING}


def clamp_mastery_level(value):
    try:
        level = int(value)
    except (TypeError, ValueError):
        level = MIN_MASTERY_LEVEL
    return min(max(level, MIN_MASTERY_LEVEL), MAX_MASTERY_LEVEL)


def build_flashcard_review_update(card, result, now_ts):
    if result not in REVIEW_RESULTS:
        raise ValueError(f"Unknown review result: {result}")
    if result == REVIEW_LEARNING:
        return {'mastery_level': MIN_MASTERY_LEVEL, 'last_reviewed': now_ts}
    return {
        'mastery_level': clamp_mastery_level(clamp_mastery_level(card.get('mastery_level')) + 1),
        'review_count': int(card.get('review_count') or 0) + 1,
        'last_reviewed': now_ts,
    }


def score_quiz_answers(questions, answers):
    """Count answers matching each question's correct_answer index."""
    score = 0
    for question, answer in zip(questions, answers):
        if isinstance(answer, bool) or not isinstance(answer, int):
            continue
        if answer == question.get('correct_answer'):
            score += 1
    return score


def parse_iso_date(value):
    try:
        return date.fromisoformat(str(value or '').strip())
    except ValueError:
        return None


def record_study_session(profile, today):
    """Return the profile fields to write after a study action on `today`.

    Returns an empty dict when the user already studied today.
    """
    profile = profile or {}
    last_date = parse_iso_date(profile.get('last_study_date'))
    if last_date == today:
        return {}
    current_streak = int(profile.get('current_streak') or 0)
    if last_date == today - timedelta(days=1):
        current_streak += 1
    else:
        current_streak = 1
    return {
        'last_study_date': today.isoformat(),
        'current_streak': current_streak,
        'longest_streak': max(current_streak, int(profile.get('longest_streak') or 0)),
        'total_study_sessions': int(profile.get('total_study_sessions') or 0) + 1,
    }


def is_streak_active(last_study_date, today):
    last_date = parse_iso_date(last_study_date)
    if last_date is None:
        return False
    return (today - last_date).days <= 1
