"""YAML-on-disk storage for assignments, submissions and evaluations."""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, Field

from .models import EvaluationResult, KeywordSet

LOG = logging.getLogger(__name__)

_SAFE_ID = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')

RecordT = TypeVar("RecordT", bound=BaseModel)


class Assignment(BaseModel):
    id: str
    title: str
    keywords: List[str] = Field(default_factory=list)
    total_marks: float = 50
    problem_statement: str = ""

    @property
    def keyword_set(self) -> KeywordSet:
        return KeywordSet(tuple(self.keywords))


class SubmissionRecord(BaseModel):
    id: str
    assignment_id: str
    student_id: str
    text_ref: str = Field(description="Where the submission text lives (path or storage key)")


class EvaluationRecord(BaseModel):
    submission_id: str
    total_score: float
    keyword_coverage: float
    matched_keywords: List[str]
    missing_keywords: List[str]
    rubric_scores: Dict[str, float]
    feedback: str
    is_low_effort: bool = False
    warning: Optional[str] = None

    @classmethod
    def from_result(cls, submission_id: str, result: EvaluationResult) -> "EvaluationRecord":
        return cls(
            submission_id=submission_id,
            total_score=result.total_score,
            keyword_coverage=result.keyword_coverage,
            matched_keywords=list(result.matched_keywords),
            missing_keywords=list(result.missing_keywords),
            rubric_scores=dict(result.rubric_scores),
            feedback=result.feedback,
            is_low_effort=result.is_low_effort,
            warning=result.warning,
        )


class RecordStore:
    """One YAML file per record under ``root/<kind>/<id>.yaml``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, kind: str, record_id: str) -> Path:
        if not _SAFE_ID.match(record_id):
            raise ValueError(f"Invalid record id: {record_id!r}")
        return self.root / kind / f"{record_id}.yaml"

    def _write(self, kind: str, record_id: str, record: BaseModel):
        path = self._path(kind, record_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(record.model_dump(), f, default_flow_style=False, sort_keys=False)

    def _read(self, kind: str, record_id: str, model: Type[RecordT]) -> Optional[RecordT]:
        path = self._path(kind, record_id)
        if not path.exists():
            return None
        with open(path, 'r') as f:
            return model.model_validate(yaml.safe_load(f))

    def save_assignment(self, assignment: Assignment):
        """
        Save an assignment.

        Raises:
            ValueError: If a stored assignment with the same id has a different keyword set
        """
        existing = self.get_assignment(assignment.id)
        if existing and existing.keywords and existing.keywords != assignment.keywords:
            raise ValueError(f"Keyword set for assignment {assignment.id} is already fixed")
        self._write("assignments", assignment.id, assignment)

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        return self._read("assignments", assignment_id, Assignment)

    def save_submission(self, submission: SubmissionRecord):
        self._write("submissions", submission.id, submission)

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        return self._read("submissions", submission_id, SubmissionRecord)

    def list_submissions(self, assignment_id: str) -> List[SubmissionRecord]:
        directory = self.root / "submissions"
        if not directory.is_dir():
            return []
        records = []
        for path in sorted(directory.glob("*.yaml")):
            record = self._read("submissions", path.stem, SubmissionRecord)
            if record and record.assignment_id == assignment_id:
                records.append(record)
        return records

    def save_evaluation(self, submission_id: str, result: EvaluationResult):
        """Save an evaluation, replacing any earlier one for the submission."""
        self._write("evaluations", submission_id, EvaluationRecord.from_result(submission_id, result))
        LOG.debug(f"Saved evaluation for {submission_id}")

    def get_evaluation(self, submission_id: str) -> Optional[EvaluationRecord]:
        return self._read("evaluations", submission_id, EvaluationRecord)
