"""Shared fixtures for keyword grading tests."""

import json
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from sanchalaak.tools.keyword_grading.llm_client import LLMClient
from sanchalaak.tools.keyword_grading.models import EvaluationResult, KeywordSet

SAMPLE_KEYWORDS = ["machine learning", "neural networks", "deep learning", "AI", "backpropagation"]

DEFAULT_RUBRIC_SCORES = {
    "content_quality": 8,
    "completeness": 7,
    "clarity_language": 4,
    "originality": 3,
}


@pytest.fixture
def sample_config():
    """Create sample configuration."""
    return {
        'openai': {
            'api_key': 'test-key',
            'organization': 'test-org',
            'model': 'gpt-4o-mini'
        },
        'keywords': {
            'target_min': 5,
            'target_max': 10,
            'min_count': 3
        },
        'low_effort': {
            'word_floor': 100,
            'density_ceiling': 0.3
        },
        'scoring': {
            'max_points': 50,
            'decimals': 2
        },
        'batch': {
            'max_concurrent': 2
        }
    }


@pytest.fixture
def keywords():
    return KeywordSet.from_terms(SAMPLE_KEYWORDS)


def build_evaluation_response(matched: List[str],
                              missing: Optional[List[str]] = None,
                              rubric: Optional[Dict] = None,
                              overall: float = 80,
                              feedback: str = "Solid explanation of the core ideas.",
                              fenced: bool = False) -> str:
    data = {
        "matched_keywords": matched,
        "missing_keywords": missing or [],
        "rubric_scores": DEFAULT_RUBRIC_SCORES if rubric is None else rubric,
        "overall_score": overall,
        "feedback": feedback,
        "strengths": ["Clear structure"],
        "areas_for_improvement": ["Cite examples"],
    }
    text = json.dumps(data)
    if fenced:
        text = f"Here is my evaluation:\n```json\n{text}\n```\nLet me know if you need more."
    return text


@pytest.fixture
def evaluation_response():
    """Factory for raw LLM evaluation text."""
    return build_evaluation_response


@pytest.fixture
def fake_client():
    """LLM client whose complete() is an AsyncMock."""
    client = Mock(spec=LLMClient)
    client.complete = AsyncMock()
    return client


@pytest.fixture
def make_result():
    """Factory for EvaluationResult with a given total."""
    def _make(total_score: float, is_low_effort: bool = False, max_score: float = 50) -> EvaluationResult:
        return EvaluationResult(
            matched_keywords=["AI"],
            missing_keywords=["deep learning"],
            rubric_scores={"keyword_coverage": 10.0, "content_quality": 5.0},
            keyword_coverage=50.0,
            total_score=total_score,
            max_score=max_score,
            is_low_effort=is_low_effort,
            feedback="Feedback text",
            warning="Keyword list only" if is_low_effort else None,
        )
    return _make
