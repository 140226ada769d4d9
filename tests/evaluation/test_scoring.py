"""Tests for session-level scoring helpers."""

import pytest

from evaluation_service.models.schemas import RepResult
from evaluation_service.models.scoring import (
    analyze_form_issues,
    calculate_consistency_score,
    calculate_overall_score,
    generate_session_stats,
    get_letter_grade,
    get_performance_trend,
    round_score,
)


def _rep(index, score=80, failing=()):
    return RepResult(rep_index=index, score=score, failing_rules=frozenset(failing))


class TestScores:

    def test_round_half_up(self):
        assert round_score(62.5) == 63
        assert round_score(62.4) == 62
        assert round_score(0.5) == 1

    def test_overall_score(self):
        assert calculate_overall_score([]) == 0
        assert calculate_overall_score([80, 90, 100]) == 90
        assert calculate_overall_score([70, 71]) == 71

    def test_consistency(self):
        assert calculate_consistency_score([]) == 100
        assert calculate_consistency_score([75]) == 100
        assert calculate_consistency_score([80, 80, 80]) == 100
        # std 10 -> 80
        assert calculate_consistency_score([70, 90]) == 80
        assert calculate_consistency_score([60, 100]) == 60
        # std 50 and beyond -> 0
        assert calculate_consistency_score([0, 100, 0, 100]) == 0

    def test_trend(self):
        assert get_performance_trend([50, 90]) == "stable"
        assert get_performance_trend([60, 62, 75, 80]) == "improving"
        assert get_performance_trend([90, 88, 70, 72]) == "declining"
        assert get_performance_trend([80, 82, 84]) == "stable"

    @pytest.mark.parametrize("score, grade", [
        (100, "S"), (95, "S"), (94, "A"), (85, "A"), (84, "B"), (70, "B"),
        (69, "C"), (55, "C"), (54, "D"), (40, "D"), (39, "F"), (0, "F"),
    ])
    def test_letter_grade(self, score, grade):
        assert get_letter_grade(score) == grade


class TestFormIssues:

    def test_severity_and_order(self):
        reps = [
            _rep(1, failing={"knee_over_toe", "back_straight"}),
            _rep(2, failing={"knee_over_toe"}),
            _rep(3, failing={"knee_over_toe"}),
            _rep(4),
            _rep(5, failing={"knee_angle"}),
            _rep(6),
            _rep(7, failing={"back_straight"}),
            _rep(8),
        ]
        issues = analyze_form_issues(reps, min_occurrences=1)

        assert [(i.rule_id, i.occurrences, i.severity) for i in issues] == [
            ("knee_over_toe", 3, "medium"),
            ("back_straight", 2, "medium"),
            ("knee_angle", 1, "low"),
        ]

    def test_high_severity(self):
        reps = [_rep(1, failing={"body_line"}), _rep(2, failing={"body_line"}), _rep(3)]
        issues = analyze_form_issues(reps, min_occurrences=1, message_codes={"body_line": "pushup.body_line.fail"})
        assert issues[0].severity == "high"
        assert issues[0].message_code == "pushup.body_line.fail"

    def test_min_occurrences(self):
        reps = [_rep(1, failing={"a", "b"}), _rep(2, failing={"a"})]
        issues = analyze_form_issues(reps, min_occurrences=2)
        assert [i.rule_id for i in issues] == ["a"]

    def test_no_reps(self):
        assert analyze_form_issues([], min_occurrences=1) == []


class TestSessionStats:

    def test_empty(self):
        stats = generate_session_stats([])
        assert stats["total_reps"] == 0
        assert stats["average_score"] == 0
        assert stats["consistency"] == 0
        assert stats["grade"] == "F"

    def test_stats(self):
        stats = generate_session_stats([80, 90, 100])
        assert stats == {
            "total_reps": 3,
            "average_score": 90,
            "best_score": 100,
            "worst_score": 80,
            "consistency": 84,
            "trend": "improving",
            "grade": "A",
        }
