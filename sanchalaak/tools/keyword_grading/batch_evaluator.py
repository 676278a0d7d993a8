"""Batch evaluator for scoring many submissions against one keyword set."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from sanchalaak.errors import ErrorAction, GradingError, UpstreamUnavailable
from sanchalaak.libs.config_loader import ConfigType, get_config
from sanchalaak.libs.file_parser import ParsedContent
from .keyword_extractor import KeywordExtractor
from .llm_client import LLMClient
from .low_effort import LowEffortDetector
from .models import EvaluationResult, KeywordSet, make_record_id
from .scorer import SubmissionScorer

LOG = logging.getLogger(__name__)


@dataclass
class Submission:
    """One piece of student work waiting to be evaluated."""
    submission_id: str
    text: str
    filename: str = ""

    @classmethod
    def from_parsed(cls, parsed: ParsedContent) -> "Submission":
        return cls(submission_id=make_record_id(parsed.filename), text=parsed.text,
                   filename=parsed.filename)


def submissions_from_parsed(parsed: Sequence[ParsedContent]) -> List[Submission]:
    """Wrap parsed files as submissions, suffixing ids that would collide."""
    submissions = []
    seen: Dict[str, int] = {}
    for item in parsed:
        submission = Submission.from_parsed(item)
        base = submission.submission_id
        if base in seen:
            seen[base] += 1
            submission.submission_id = f"{base}-{seen[base]}"
        else:
            seen[base] = 1
        submissions.append(submission)
    return submissions


@dataclass
class SubmissionOutcome:
    """Result of evaluating one submission: a result on success, an error otherwise."""
    submission_id: str
    filename: str = ""
    result: Optional[EvaluationResult] = None
    error_message: Optional[str] = None
    error_action: Optional[str] = None
    error_reason: Optional[str] = None
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    @property
    def success(self) -> bool:
        return self.result is not None

    @classmethod
    def failed(cls, submission_id: str, error: Exception, filename: str = "") -> "SubmissionOutcome":
        if isinstance(error, GradingError):
            message = error.user_message
            action = error.action.value
        else:
            message = str(error) or type(error).__name__
            action = ErrorAction.RETRY.value
        reason = error.reason.value if isinstance(error, UpstreamUnavailable) else None
        return cls(
            submission_id=submission_id,
            filename=filename,
            error_message=message,
            error_action=action,
            error_reason=reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for YAML serialization."""
        data = {
            'submission_id': self.submission_id,
            'filename': self.filename,
            'success': self.success,
            'timestamp': self.timestamp,
        }
        if self.result:
            data.update(self.result.to_yaml_dict())
        else:
            data['error_message'] = self.error_message
            data['error_action'] = self.error_action
            if self.error_reason:
                data['error_reason'] = self.error_reason
        return data


class BatchEvaluator:
    """Evaluate submissions with bounded concurrency, isolating per-submission failures."""

    def __init__(self, configs: ConfigType,
                 client: Optional[LLMClient] = None,
                 model: Optional[str] = None,
                 settings: Optional[Dict[str, Any]] = None,
                 max_concurrent: Optional[int] = None,
                 store=None):
        """
        Initialize the batch evaluator.

        Args:
            configs: Configuration dictionary
            client: LLM client (built from configs when omitted)
            model: Optional model override
            settings: Optional settings override
            max_concurrent: Maximum number of concurrent evaluations (overrides config);
                1 evaluates strictly one submission at a time
            store: Optional RecordStore; each successful evaluation is saved to it
        """
        self.configs = configs
        self.client = client or LLMClient(configs, model=model, settings=settings)

        if max_concurrent is not None:
            self.max_concurrent = max_concurrent
        else:
            self.max_concurrent = get_config("batch.max_concurrent", configs, default=3)
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.extractor = KeywordExtractor(configs, self.client)
        self.detector = LowEffortDetector.from_config(configs)
        self.scorer = SubmissionScorer(configs, self.client)
        self.store = store

        LOG.info(f"BatchEvaluator initialized with max_concurrent={self.max_concurrent}")

    async def extract_keywords_async(self, problem_statement: str) -> KeywordSet:
        """Extract the keyword set. Failures propagate: nothing can be scored without it."""
        return await self.extractor.extract_async(problem_statement)

    async def evaluate_submission_async(self, submission: Submission,
                                        keywords: KeywordSet) -> SubmissionOutcome:
        """
        Evaluate one submission. Never raises; failures become failed outcomes.

        Calling this again for a failed submission retries it.
        """
        LOG.debug(f"Evaluating submission: {submission.submission_id}")
        try:
            report = self.detector.detect(submission.text, keywords)
            result = await self.scorer.score_async(submission.text, keywords, report)
        except Exception as e:  # pylint: disable=broad-except
            LOG.error(f"Error evaluating {submission.submission_id}: {e}")
            return SubmissionOutcome.failed(submission.submission_id, e, submission.filename)

        if self.store is not None:
            try:
                self.store.save_evaluation(submission.submission_id, result)
            except Exception as e:  # pylint: disable=broad-except
                LOG.error(f"Could not save evaluation for {submission.submission_id}: {e}")
                return SubmissionOutcome.failed(submission.submission_id, e, submission.filename)

        LOG.debug(f"Evaluated {submission.submission_id}: {result.total_score}/{result.max_score}")
        return SubmissionOutcome(
            submission_id=submission.submission_id,
            filename=submission.filename,
            result=result,
        )

    async def iter_outcomes(self, submissions: Sequence[Submission],
                            keywords: KeywordSet) -> AsyncIterator[SubmissionOutcome]:
        """
        Yield each submission's outcome as soon as it completes.

        Stopping iteration early cancels the evaluations that have not
        finished; outcomes already yielded remain valid.
        """
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def evaluate_with_semaphore(submission: Submission) -> SubmissionOutcome:
            async with semaphore:
                return await self.evaluate_submission_async(submission, keywords)

        tasks = [asyncio.ensure_future(evaluate_with_semaphore(s)) for s in submissions]
        try:
            with tqdm(total=len(tasks), desc="Evaluating submissions") as progress:
                for next_done in asyncio.as_completed(tasks):
                    outcome = await next_done
                    progress.update(1)
                    yield outcome
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                LOG.info(f"Cancelled {len(pending)} pending evaluations")
                await asyncio.gather(*pending, return_exceptions=True)

    async def evaluate_all_async(self, submissions: Sequence[Submission], keywords: KeywordSet,
                                 on_outcome: Optional[Callable[[SubmissionOutcome], None]] = None
                                 ) -> List[SubmissionOutcome]:
        """
        Evaluate all submissions.

        Args:
            submissions: Submissions with unique ids
            keywords: Reference keyword set
            on_outcome: Called with each outcome as it arrives (progress reporting)

        Returns:
            One outcome per submission, in the order submissions were given
        """
        ids = [s.submission_id for s in submissions]
        if len(set(ids)) != len(ids):
            raise ValueError("Submission ids must be unique")

        LOG.info(f"Evaluating {len(submissions)} submissions against {len(keywords)} keywords")
        results: Dict[str, SubmissionOutcome] = {}
        async for outcome in self.iter_outcomes(submissions, keywords):
            results[outcome.submission_id] = outcome
            if outcome.success:
                LOG.debug(f"Completed: {outcome.submission_id} - "
                          f"{outcome.result.total_score}/{outcome.result.max_score}")
            else:
                LOG.warning(f"Failed: {outcome.submission_id} - {outcome.error_message}")
            if on_outcome:
                on_outcome(outcome)

        return [results[submission_id] for submission_id in ids]

    def evaluate_all(self, submissions: Sequence[Submission], keywords: KeywordSet,
                     on_outcome: Optional[Callable[[SubmissionOutcome], None]] = None
                     ) -> List[SubmissionOutcome]:
        """Synchronous wrapper for evaluate_all_async."""
        return asyncio.run(self.evaluate_all_async(submissions, keywords, on_outcome))

    async def run_async(self, problem_statement: str,
                        submissions: Sequence[Submission]) -> tuple:
        """Extract keywords, then evaluate every submission against them."""
        keywords = await self.extract_keywords_async(problem_statement)
        outcomes = await self.evaluate_all_async(submissions, keywords)
        return keywords, outcomes

    def run(self, problem_statement: str, submissions: Sequence[Submission]) -> tuple:
        """Synchronous wrapper for run_async."""
        return asyncio.run(self.run_async(problem_statement, submissions))
