"""Extract a keyword set from an assignment problem statement."""

import asyncio
import logging
from typing import Optional

from sanchalaak.errors import InsufficientKeywords
from sanchalaak.libs.config_loader import ConfigType, get_config
from .llm_client import LLMClient, LLMRequest
from .models import KeywordSet
from .prompts import build_extraction_prompt
from .response_parser import ARRAY, parse_json_response, validate_string_array

LOG = logging.getLogger(__name__)


class KeywordExtractor:
    """Ask the LLM for domain keywords and clean up what comes back."""

    def __init__(self, configs: ConfigType, client: LLMClient,
                 target_min: Optional[int] = None,
                 target_max: Optional[int] = None,
                 min_count: Optional[int] = None):
        """
        Args:
            configs: Configuration dictionary
            client: LLM client used for the extraction call
            target_min: Lower end of the requested keyword count (overrides config)
            target_max: Upper end of the requested count; extra keywords are dropped
            min_count: Fewer usable keywords than this is an error (overrides config)
        """
        self.client = client
        self.target_min = target_min if target_min is not None else get_config(
            "keywords.target_min", configs, default=30)
        self.target_max = target_max if target_max is not None else get_config(
            "keywords.target_max", configs, default=50)
        self.min_count = min_count if min_count is not None else get_config(
            "keywords.min_count", configs, default=5)

        if self.target_min > self.target_max:
            raise ValueError(f"target_min {self.target_min} exceeds target_max {self.target_max}")
        if self.min_count > self.target_max:
            raise ValueError(f"min_count {self.min_count} exceeds target_max {self.target_max}")

    async def extract_async(self, problem_statement: str) -> KeywordSet:
        """
        Extract the keyword set for a problem statement.

        Raises:
            ValueError: If the problem statement is empty
            MalformedResponse: If the response has no JSON array of strings
            InsufficientKeywords: If fewer than min_count usable keywords remain
            UpstreamUnavailable: If the LLM service fails
        """
        if not problem_statement or not problem_statement.strip():
            raise ValueError("Problem statement is empty")

        prompt = build_extraction_prompt(problem_statement.strip(), self.target_min, self.target_max)
        raw_text = await self.client.complete(LLMRequest(role="extract", prompt=prompt))

        parsed = validate_string_array(parse_json_response(raw_text, ARRAY), raw_text)
        keywords = self.clean_keywords(parsed.unwrap())
        LOG.info("Extracted %d keywords", len(keywords))
        return keywords

    def extract(self, problem_statement: str) -> KeywordSet:
        """Synchronous wrapper for extract_async."""
        return asyncio.run(self.extract_async(problem_statement))

    def clean_keywords(self, terms: list) -> KeywordSet:
        """Deduplicate, drop blanks, cap at target_max and enforce the floor."""
        keywords = KeywordSet.from_terms(terms)
        if len(keywords) > self.target_max:
            LOG.debug("Truncating %d keywords to %d", len(keywords), self.target_max)
            keywords = KeywordSet(keywords.keywords[:self.target_max])
        if len(keywords) < self.min_count:
            raise InsufficientKeywords(len(keywords), self.min_count)
        return keywords
