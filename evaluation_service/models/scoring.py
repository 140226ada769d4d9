"""
FORMCOACH Evaluation Service - Scoring

Session-level statistics over repetition scores and form-issue analysis.
All scores are integers on a 0-100 scale.
"""

import math
import numpy as np
from typing import Any, Dict, List, Mapping, Optional, Sequence

from core.config import settings

from .schemas import FormIssue, RepResult


# Standard deviation at which consistency reaches 0
MAX_SCORE_STD = 50.0

# Half-average difference needed to call a trend
TREND_DELTA = 5.0

GRADE_THRESHOLDS = (
    (95, "S"),
    (85, "A"),
    (70, "B"),
    (55, "C"),
    (40, "D"),
)


def round_score(value: float) -> int:
    """Round half up (62.5 -> 63), unlike the built-in round()."""
    return int(math.floor(value + 0.5))


def calculate_overall_score(scores: Sequence[float]) -> int:
    """Rounded mean of the scores, 0 for none."""
    if not scores:
        return 0
    return round_score(float(np.mean(scores)))


def calculate_consistency_score(scores: Sequence[float]) -> int:
    """
    How evenly the reps were performed.

    Returns:
        100 for identical scores (or fewer than 2 reps), falling linearly to
        0 as the population standard deviation reaches MAX_SCORE_STD
    """
    if len(scores) < 2:
        return 100
    std = float(np.std(scores))
    return round_score((1 - min(std / MAX_SCORE_STD, 1.0)) * 100)


def get_performance_trend(scores: Sequence[float]) -> str:
    """Compare the first and second half averages: improving, stable or declining."""
    if len(scores) < 3:
        return "stable"

    mid = len(scores) // 2
    diff = float(np.mean(scores[mid:])) - float(np.mean(scores[:mid]))

    if diff > TREND_DELTA:
        return "improving"
    if diff < -TREND_DELTA:
        return "declining"
    return "stable"


def get_letter_grade(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def _get_severity(occurrences: int, total: int) -> str:
    rate = occurrences / total
    if rate >= 0.5:
        return "high"
    if rate >= 0.25:
        return "medium"
    return "low"


def analyze_form_issues(
    reps: Sequence[RepResult],
    min_occurrences: Optional[int] = None,
    message_codes: Optional[Mapping[str, str]] = None
) -> List[FormIssue]:
    """
    Aggregate failing rules across a session.

    Args:
        reps: completed repetitions
        min_occurrences: minimum number of failing reps to report a rule
            (settings.FORM_ISSUE_MIN_OCCURRENCES if None)
        message_codes: rule_id -> message code attached to each issue

    Returns:
        Issues sorted by occurrences, most frequent first
    """
    if min_occurrences is None:
        min_occurrences = settings.FORM_ISSUE_MIN_OCCURRENCES
    if not reps:
        return []

    counts: Dict[str, int] = {}
    for rep in reps:
        for rule_id in rep.failing_rules:
            counts[rule_id] = counts.get(rule_id, 0) + 1

    issues = [
        FormIssue(
            rule_id=rule_id,
            occurrences=count,
            severity=_get_severity(count, len(reps)),
            message_code=(message_codes or {}).get(rule_id),
        )
        for rule_id, count in counts.items()
        if count >= min_occurrences
    ]
    return sorted(issues, key=lambda issue: (-issue.occurrences, issue.rule_id))


def generate_session_stats(scores: Sequence[float]) -> Dict[str, Any]:
    """Summary statistics for a list of rep scores."""
    if not scores:
        return {
            "total_reps": 0,
            "average_score": 0,
            "best_score": 0,
            "worst_score": 0,
            "consistency": 0,
            "trend": "stable",
            "grade": "F",
        }

    average = calculate_overall_score(scores)
    return {
        "total_reps": len(scores),
        "average_score": average,
        "best_score": int(max(scores)),
        "worst_score": int(min(scores)),
        "consistency": calculate_consistency_score(scores),
        "trend": get_performance_trend(scores),
        "grade": get_letter_grade(average),
    }
