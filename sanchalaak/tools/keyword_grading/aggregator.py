"""Summary statistics and export rows for a batch of evaluations."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .batch_evaluator import SubmissionOutcome

GRADE_THRESHOLDS = (("A", 90.0), ("B", 80.0), ("C", 70.0), ("D", 60.0))


def letter_grade(score: float, max_score: float) -> str:
    """Letter grade for a score, using percentage cut-offs."""
    percentage = score / max_score * 100 if max_score else 0.0
    for grade, cutoff in GRADE_THRESHOLDS:
        if percentage >= cutoff:
            return grade
    return "F"


@dataclass
class BatchSummary:
    count: int
    average_score: float
    low_effort_count: int
    failed_count: int
    max_score: float
    grade_distribution: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.count + self.failed_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_submissions': self.total,
            'evaluated': self.count,
            'failed': self.failed_count,
            'average_score': self.average_score,
            'max_possible_score': self.max_score,
            'low_effort_count': self.low_effort_count,
            'grade_distribution': dict(self.grade_distribution),
        }


@dataclass
class ExportRow:
    """One submission, flattened for tabular reports."""
    submission_id: str
    filename: str
    status: str
    total_score: Optional[float] = None
    max_score: Optional[float] = None
    keyword_coverage: Optional[float] = None
    matched_count: Optional[int] = None
    missing_count: Optional[int] = None
    is_low_effort: Optional[bool] = None
    rubric_scores: Dict[str, float] = field(default_factory=dict)
    feedback: str = ""
    warning: str = ""
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'submission_id': self.submission_id,
            'filename': self.filename,
            'status': self.status,
            'total_score': self.total_score,
            'max_score': self.max_score,
            'keyword_coverage': self.keyword_coverage,
            'matched_count': self.matched_count,
            'missing_count': self.missing_count,
            'is_low_effort': self.is_low_effort,
        }
        for name, points in self.rubric_scores.items():
            data[f"{name}_points"] = points
        data['feedback'] = self.feedback
        data['warning'] = self.warning
        data['error'] = self.error
        return data


@dataclass
class BatchReport:
    summary: BatchSummary
    rows: List[ExportRow]


def summarize(outcomes: Sequence[SubmissionOutcome], max_score: Optional[float] = None) -> BatchSummary:
    """
    Compute batch statistics over the successful outcomes only.

    Failed outcomes are counted separately and never treated as zero scores.
    """
    results = [o.result for o in outcomes if o.success]
    failed_count = len(outcomes) - len(results)

    if max_score is None:
        max_score = results[0].max_score if results else 0.0

    average = sum(r.total_score for r in results) / len(results) if results else 0
    distribution = {grade: 0 for grade, _ in GRADE_THRESHOLDS}
    distribution["F"] = 0
    for result in results:
        distribution[letter_grade(result.total_score, result.max_score)] += 1

    return BatchSummary(
        count=len(results),
        average_score=average,
        low_effort_count=sum(1 for r in results if r.is_low_effort),
        failed_count=failed_count,
        max_score=max_score,
        grade_distribution=distribution,
    )


def build_rows(outcomes: Sequence[SubmissionOutcome]) -> List[ExportRow]:
    rows = []
    for outcome in outcomes:
        result = outcome.result
        if result is None:
            rows.append(ExportRow(
                submission_id=outcome.submission_id,
                filename=outcome.filename,
                status="failed",
                error=outcome.error_message or "",
            ))
            continue
        rows.append(ExportRow(
            submission_id=outcome.submission_id,
            filename=outcome.filename,
            status="evaluated",
            total_score=result.total_score,
            max_score=result.max_score,
            keyword_coverage=result.keyword_coverage,
            matched_count=len(result.matched_keywords),
            missing_count=len(result.missing_keywords),
            is_low_effort=result.is_low_effort,
            rubric_scores=dict(result.rubric_scores),
            feedback=result.feedback,
            warning=result.warning or "",
        ))
    return rows


def aggregate(outcomes: Sequence[SubmissionOutcome], max_score: Optional[float] = None) -> BatchReport:
    """Summary plus one export row per submission, in the order given."""
    return BatchReport(summary=summarize(outcomes, max_score), rows=build_rows(outcomes))
