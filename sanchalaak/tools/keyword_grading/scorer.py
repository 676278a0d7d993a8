"""Score a submission against a keyword set with a fixed points rubric."""

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sanchalaak.errors import EmptySubmission
from sanchalaak.libs.config_loader import ConfigType, get_config
from .llm_client import LLMClient, LLMRequest
from .low_effort import LowEffortReport
from .models import COVERAGE_DIMENSION, EvaluationResult, KeywordSet, RubricDimension
from .prompts import build_evaluation_prompt
from .response_parser import OBJECT, parse_json_response, validate_object_keys

LOG = logging.getLogger(__name__)

REQUIRED_KEYS = ("matched_keywords", "missing_keywords", "rubric_scores", "feedback")
SCORE_KEYS = ("overall_score", "total_score")

DEFAULT_COVERAGE_POINTS = 20.0
DEFAULT_RUBRIC = [
    RubricDimension(name="content_quality", max_points=10,
                    description="Depth, accuracy and correctness of the explanations"),
    RubricDimension(name="completeness", max_points=10,
                    description="How fully the submission addresses every part of the problem"),
    RubricDimension(name="clarity_language", max_points=5,
                    description="Clarity of writing, structure and organization"),
    RubricDimension(name="originality", max_points=5,
                    description="Critical thinking, analysis and original insight"),
]


def load_rubric(configs: ConfigType) -> List[RubricDimension]:
    """Read the LLM-scored rubric dimensions from config, falling back to the defaults."""
    entries = get_config("scoring.rubric", configs, default=None)
    if not entries:
        return list(DEFAULT_RUBRIC)
    rubric = [RubricDimension(**entry) for entry in entries]
    names = [d.name for d in rubric]
    if COVERAGE_DIMENSION in names:
        raise ValueError(f"'{COVERAGE_DIMENSION}' is computed locally and cannot be configured")
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate rubric dimensions: {names}")
    return rubric


def coerce_number(value: Any) -> float:
    """Turn an LLM-reported number into a float; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().split('/')[0].rstrip('%').strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class SubmissionScorer:
    """Evaluate submissions with the LLM and validate everything it reports."""

    def __init__(self, configs: ConfigType, client: LLMClient,
                 rubric: Optional[List[RubricDimension]] = None,
                 max_points: Optional[float] = None):
        """
        Args:
            configs: Configuration dictionary
            client: LLM client used for evaluation calls
            rubric: LLM-scored rubric dimensions (overrides config)
            max_points: Scale the raw rubric total is converted to (overrides config)
        """
        self.client = client
        self.rubric = rubric if rubric is not None else load_rubric(configs)
        self.coverage_points = float(get_config("scoring.coverage_points", configs,
                                                default=DEFAULT_COVERAGE_POINTS))
        self.max_points = float(max_points if max_points is not None else get_config(
            "scoring.max_points", configs, default=50))
        self.decimals = int(get_config("scoring.decimals", configs, default=2))

        if self.max_points <= 0:
            raise ValueError("scoring.max_points must be positive")

    @property
    def raw_max(self) -> float:
        """
        Maximum of the unconverted rubric sum.

        Coverage points always count toward the maximum. With an empty keyword
        set coverage scores 0, so a perfect rubric reaches
        ``(raw_max - coverage_points) / raw_max`` of ``max_points`` (30/50 by default).
        """
        return self.coverage_points + sum(d.max_points for d in self.rubric)

    async def score_async(self, submission_text: str, keywords: KeywordSet,
                          low_effort: LowEffortReport) -> EvaluationResult:
        """
        Score one submission.

        Args:
            submission_text: Extracted text of the submission
            keywords: Reference keyword set (may be empty)
            low_effort: Result of the local low-effort check

        Returns:
            EvaluationResult satisfying the partition and bound invariants

        Raises:
            EmptySubmission: If the submission text is empty
            MalformedResponse: If the response cannot be parsed into an evaluation
            UpstreamUnavailable: If the LLM service fails
        """
        if not submission_text or not submission_text.strip():
            raise EmptySubmission()

        prompt = build_evaluation_prompt(submission_text, keywords, self.rubric,
                                         low_effort.is_low_effort)
        raw_text = await self.client.complete(LLMRequest(role="evaluate", prompt=prompt))

        parsed = validate_object_keys(
            parse_json_response(raw_text, OBJECT), raw_text,
            required=REQUIRED_KEYS, one_of=SCORE_KEYS,
        )
        data = parsed.unwrap()
        return self.build_result(data, keywords, low_effort)

    def score(self, submission_text: str, keywords: KeywordSet,
              low_effort: LowEffortReport) -> EvaluationResult:
        """Synchronous wrapper for score_async."""
        return asyncio.run(self.score_async(submission_text, keywords, low_effort))

    def build_result(self, data: Dict[str, Any], keywords: KeywordSet,
                     low_effort: LowEffortReport) -> EvaluationResult:
        """Validate a parsed LLM evaluation and compute the final scores."""
        matched, missing = self.partition_keywords(data, keywords)

        coverage_fraction = len(matched) / len(keywords) if keywords else 0.0
        rubric_scores = {
            COVERAGE_DIMENSION: round(coverage_fraction * self.coverage_points, self.decimals),
        }
        rubric_scores.update(self.clamp_rubric_scores(data.get("rubric_scores")))

        total_score = self.compute_total(rubric_scores)
        reported = coerce_number(data.get("overall_score", data.get("total_score")))
        LOG.debug("Computed total %s/%s (model reported %s)", total_score, self.max_points, reported)

        feedback = data.get("feedback")
        if not isinstance(feedback, str) or not feedback.strip():
            feedback = f"Covered {len(matched)} of {len(keywords)} reference keywords."

        return EvaluationResult(
            matched_keywords=matched,
            missing_keywords=missing,
            rubric_scores=rubric_scores,
            keyword_coverage=round(coverage_fraction * 100, self.decimals),
            total_score=total_score,
            max_score=self.max_points,
            is_low_effort=low_effort.is_low_effort,
            word_count=low_effort.word_count,
            keyword_hit_count=low_effort.keyword_hit_count,
            feedback=feedback.strip(),
            warning=low_effort.warning,
            strengths=_string_list(data.get("strengths")),
            areas_for_improvement=_string_list(data.get("areas_for_improvement")),
        )

    def partition_keywords(self, data: Dict[str, Any],
                           keywords: KeywordSet) -> Tuple[List[str], List[str]]:
        """
        Split the reference keywords into matched and missing.

        Entries not in the reference set are dropped. A keyword the model put
        in both lists counts as matched; one it left out counts as missing.
        The result follows the reference set's order.
        """
        reported_matched = set()
        dropped = []
        for term in _string_list(data.get("matched_keywords")):
            canonical = keywords.lookup(term)
            if canonical is None:
                dropped.append(term)
            else:
                reported_matched.add(canonical)
        for term in _string_list(data.get("missing_keywords")):
            if keywords.lookup(term) is None:
                dropped.append(term)

        if dropped:
            LOG.debug("Discarded %d keywords not in the reference set: %s", len(dropped), dropped)

        matched = [k for k in keywords if k in reported_matched]
        missing = [k for k in keywords if k not in reported_matched]
        return matched, missing

    def clamp_rubric_scores(self, reported: Any) -> Dict[str, float]:
        """Read each configured dimension from the model output, clamped to its bounds."""
        if not isinstance(reported, dict):
            LOG.warning("rubric_scores is not an object; scoring every dimension 0")
            reported = {}
        lowered = {str(k).lower(): v for k, v in reported.items()}

        scores = {}
        for dimension in self.rubric:
            if dimension.name.lower() not in lowered:
                LOG.warning("Model omitted rubric dimension %s; scoring it 0", dimension.name)
            value = coerce_number(lowered.get(dimension.name.lower()))
            scores[dimension.name] = clamp(value, 0.0, dimension.max_points)
        return scores

    def compute_total(self, rubric_scores: Dict[str, float]) -> float:
        """Convert the raw rubric sum to the configured scale."""
        raw_total = sum(rubric_scores.values())
        total = round(raw_total / self.raw_max * self.max_points, self.decimals)
        return clamp(total, 0.0, self.max_points)
