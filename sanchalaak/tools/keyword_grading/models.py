"""Pydantic models for keyword-coverage evaluation."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator


COVERAGE_DIMENSION = "keyword_coverage"


def make_record_id(name: str) -> str:
    """Turn a filename or label into an id usable as a record key."""
    slug = re.sub(r'[^A-Za-z0-9._-]+', '_', name.strip()).strip('._-')
    return slug or "submission"


@dataclass(frozen=True)
class KeywordSet:
    """
    Ordered set of unique keywords extracted from a problem statement.

    Membership is case-insensitive; the casing of the first occurrence is the
    one kept for display.
    """

    keywords: Tuple[str, ...] = ()
    _index: Dict[str, str] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        index = {}
        for keyword in self.keywords:
            index.setdefault(keyword.lower(), keyword)
        if len(index) != len(self.keywords):
            raise ValueError("KeywordSet contains duplicate keywords; use KeywordSet.from_terms")
        object.__setattr__(self, "_index", index)

    @classmethod
    def from_terms(cls, terms: Iterable[Any]) -> "KeywordSet":
        """Build a set from raw terms, dropping blanks and case-insensitive duplicates."""
        seen = set()
        unique = []
        for term in terms:
            if not isinstance(term, str):
                continue
            cleaned = term.strip()
            if not cleaned or cleaned.lower() in seen:
                continue
            seen.add(cleaned.lower())
            unique.append(cleaned)
        return cls(tuple(unique))

    def lookup(self, term: Any) -> Optional[str]:
        """Return the stored spelling of ``term``, or None if it is not a member."""
        if not isinstance(term, str):
            return None
        return self._index.get(term.strip().lower())

    def __contains__(self, term: Any) -> bool:
        return self.lookup(term) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.keywords)

    def __len__(self) -> int:
        return len(self.keywords)

    def as_list(self) -> List[str]:
        return list(self.keywords)


class RubricDimension(BaseModel):
    """Single named, bounded rubric dimension."""
    name: str = Field(description="Name of the rubric dimension")
    max_points: float = Field(gt=0, description="Maximum points for this dimension")
    description: str = Field(default="", description="What the dimension measures")


class EvaluationResult(BaseModel):
    """Validated evaluation of one submission against one keyword set."""
    matched_keywords: List[str] = Field(description="Reference keywords judged present in the submission")
    missing_keywords: List[str] = Field(description="Reference keywords judged absent")
    rubric_scores: Dict[str, float] = Field(description="Bounded sub-score per rubric dimension")
    keyword_coverage: float = Field(ge=0, le=100, description="Percentage of the keyword set matched")
    total_score: float = Field(ge=0, description="Score after conversion to the configured scale")
    max_score: float = Field(gt=0, description="Maximum possible total score")
    is_low_effort: bool = Field(default=False, description="Set by the local low-effort heuristic only")
    word_count: int = Field(default=0, ge=0)
    keyword_hit_count: int = Field(default=0, ge=0)
    feedback: str = Field(min_length=1, description="Feedback text for the student")
    warning: Optional[str] = Field(default=None, description="Present only for low-effort submissions")
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_invariants(self) -> "EvaluationResult":
        overlap = {k.lower() for k in self.matched_keywords} & {k.lower() for k in self.missing_keywords}
        if overlap:
            raise ValueError(f"Keywords both matched and missing: {sorted(overlap)}")
        if self.total_score > self.max_score:
            raise ValueError(f"total_score {self.total_score} exceeds max_score {self.max_score}")
        if self.warning and not self.is_low_effort:
            raise ValueError("warning is only allowed on low-effort results")
        return self

    @property
    def matched_count(self) -> int:
        return len(self.matched_keywords)

    def to_yaml_dict(self) -> dict:
        """Convert to dictionary suitable for YAML serialization."""
        result = {
            'total_score': self.total_score,
            'max_score': self.max_score,
            'keyword_coverage': self.keyword_coverage,
            'rubric_scores': dict(self.rubric_scores),
            'matched_keywords': list(self.matched_keywords),
            'missing_keywords': list(self.missing_keywords),
            'is_low_effort': self.is_low_effort,
            'feedback': self.feedback,
        }
        if self.warning:
            result['warning'] = self.warning
        if self.strengths:
            result['strengths'] = list(self.strengths)
        if self.areas_for_improvement:
            result['areas_for_improvement'] = list(self.areas_for_improvement)
        return result
