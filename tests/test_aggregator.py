"""Tests for batch statistics and export rows."""

import pytest

from sanchalaak.errors import MalformedResponse
from sanchalaak.tools.keyword_grading.aggregator import aggregate, letter_grade, summarize
from sanchalaak.tools.keyword_grading.batch_evaluator import SubmissionOutcome


def success(submission_id, result):
    return SubmissionOutcome(submission_id=submission_id, filename=f"{submission_id}.txt", result=result)


def failure(submission_id):
    return SubmissionOutcome.failed(submission_id, MalformedResponse("bad json"), f"{submission_id}.txt")


def test_summary_ignores_failed_outcomes(make_result):
    outcomes = [
        success("a", make_result(40)),
        success("b", make_result(30, is_low_effort=True)),
        failure("c"),
    ]

    summary = summarize(outcomes)

    assert summary.count == 2
    assert summary.failed_count == 1
    assert summary.total == 3
    assert summary.average_score == 35.0
    assert summary.low_effort_count == 1
    assert summary.max_score == 50


def test_empty_batch():
    summary = summarize([], max_score=50)
    assert summary.count == 0
    assert summary.average_score == 0
    assert summary.low_effort_count == 0
    assert summary.grade_distribution == {"A": 0, "B": 0, "C": 0, "D": 0, "F": 0}


def test_all_failed_average_is_zero():
    summary = summarize([failure("a"), failure("b")], max_score=50)
    assert summary.count == 0
    assert summary.failed_count == 2
    assert summary.average_score == 0


def test_grade_distribution(make_result):
    outcomes = [success(str(i), make_result(score)) for i, score in enumerate([50, 45, 40, 35, 30, 10])]

    summary = summarize(outcomes)

    assert summary.grade_distribution == {"A": 2, "B": 1, "C": 1, "D": 1, "F": 1}


@pytest.mark.parametrize("score,expected", [
    (90, "A"), (89.99, "B"), (80, "B"), (70, "C"), (60, "D"), (59.9, "F"), (0, "F"),
])
def test_letter_grade_cutoffs(score, expected):
    assert letter_grade(score, 100) == expected


def test_letter_grade_zero_max():
    assert letter_grade(10, 0) == "F"


def test_rows_follow_input_order(make_result):
    outcomes = [failure("z"), success("a", make_result(40, is_low_effort=True))]

    report = aggregate(outcomes, max_score=50)

    assert [row.submission_id for row in report.rows] == ["z", "a"]
    failed, evaluated = report.rows
    assert failed.status == "failed"
    assert failed.total_score is None
    assert "could not be read" in failed.error
    assert evaluated.status == "evaluated"
    assert evaluated.total_score == 40
    assert evaluated.matched_count == 1
    assert evaluated.missing_count == 1
    assert evaluated.is_low_effort
    assert evaluated.warning == "Keyword list only"


def test_row_to_dict_flattens_rubric(make_result):
    row = aggregate([success("a", make_result(40))]).rows[0]

    data = row.to_dict()
    keys = list(data)

    assert data["keyword_coverage"] == 50.0
    assert data["keyword_coverage_points"] == 10.0
    assert data["content_quality_points"] == 5.0
    assert keys[-3:] == ["feedback", "warning", "error"]
    assert keys.index("is_low_effort") < keys.index("content_quality_points")


def test_summary_to_dict(make_result):
    data = summarize([success("a", make_result(45)), failure("b")]).to_dict()
    assert data == {
        'total_submissions': 2,
        'evaluated': 1,
        'failed': 1,
        'average_score': 45.0,
        'max_possible_score': 50,
        'low_effort_count': 0,
        'grade_distribution': {"A": 1, "B": 0, "C": 0, "D": 0, "F": 0},
    }
