"""Keyword-coverage evaluation: extract keywords, score submissions, aggregate batches."""

from .models import EvaluationResult, KeywordSet, RubricDimension
from .response_parser import JsonParseResult, parse_json_response
from .llm_client import LLMClient, LLMRequest
from .keyword_extractor import KeywordExtractor
from .low_effort import LowEffortDetector, LowEffortReport
from .scorer import SubmissionScorer
from .batch_evaluator import BatchEvaluator, Submission, SubmissionOutcome
from .aggregator import BatchReport, BatchSummary, ExportRow, aggregate

__all__ = [
    'EvaluationResult',
    'KeywordSet',
    'RubricDimension',
    'JsonParseResult',
    'parse_json_response',
    'LLMClient',
    'LLMRequest',
    'KeywordExtractor',
    'LowEffortDetector',
    'LowEffortReport',
    'SubmissionScorer',
    'BatchEvaluator',
    'Submission',
    'SubmissionOutcome',
    'BatchReport',
    'BatchSummary',
    'ExportRow',
    'aggregate',
]
