# src/engine/scoring.py
import math

WORST_RATING = 5.0


def parse_rating(security_rating) -> float:
    if security_rating is None or security_rating == "":
        return WORST_RATING
    try:
        rating = float(security_rating)
    except (TypeError, ValueError):
        return WORST_RATING
    if not math.isfinite(rating):
        return WORST_RATING
    return rating


def calculate_score(security_rating) -> int:
    """
    Map a security rating (1.0 = A ... 5.0 = E) to a score out of 100.
    1.0 -> 100, 2.0 -> 80, 3.0 -> 60, 4.0 -> 40, 5.0 -> 20, clamped to [0, 100].
    A missing rating counts as the worst one.
    """
    # outside [1, 6] the score is already pinned at 100 or 0
    rating = min(max(parse_rating(security_rating), 1.0), 6.0)
    return max(0, math.floor(100 - (rating - 1) * 20))


def score_grade(score):
    if score is None:
        return None
    if score >= 90:
        return "A"
    if score >= 70:
        return "B"
    return "F"
