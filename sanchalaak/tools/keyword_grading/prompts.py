"""Prompt text for keyword extraction and submission evaluation."""

import json
from typing import List

from .models import KeywordSet, RubricDimension

EXTRACTION_SYSTEM_PROMPT = (
    "You are a keyword extraction specialist for academic assignment evaluation. "
    "You pick the domain-specific terms a strong answer to an assignment must use: "
    "core technical concepts, subject terminology, processes, principles, theories, "
    "methodologies, frameworks and named techniques. You never return generic academic "
    "words (important, analysis, conclusion, introduction) or common verbs (discuss, "
    "explain, describe, evaluate). You answer with a JSON array of strings only."
)

EVALUATION_SYSTEM_PROMPT = (
    "You are an expert academic assignment evaluator. You judge student submissions "
    "against a list of reference keywords and a fixed rubric. Match keywords by meaning, "
    "not by exact text: synonyms, abbreviations and paraphrases count as matches. "
    "Be fair but rigorous and give constructive feedback. You answer with a single "
    "JSON object only."
)


def build_extraction_prompt(problem_statement: str, target_min: int, target_max: int) -> str:
    """Build the user prompt for keyword extraction."""
    if target_min == target_max:
        count_text = f"exactly {target_max}"
    else:
        count_text = f"{target_min}-{target_max}"

    return f"""Extract {count_text} highly relevant, domain-specific keywords from the assignment problem below.
They will be used to check which concepts each student submission covers.

FOCUS ON:
- Core technical terms and concepts central to the topic
- Key processes, principles, theories or laws
- Important methodologies, frameworks or models
- Specific examples or scenarios mentioned in the problem

AVOID generic words, common verbs and vague or overly broad terms.
If the problem is short, return fewer keywords rather than padding the list.

Return ONLY a JSON array of strings:
["keyword1", "keyword2", ...]

ASSIGNMENT PROBLEM:
{problem_statement}"""


def build_evaluation_prompt(submission_text: str,
                            keywords: KeywordSet,
                            rubric: List[RubricDimension],
                            is_low_effort: bool) -> str:
    """Build the user prompt for evaluating one submission."""
    rubric_text = "\n".join(
        f"- {d.name} (0-{d.max_points:g} points): {d.description}" for d in rubric
    )
    rubric_json = ", ".join(f'"{d.name}": <number 0-{d.max_points:g}>' for d in rubric)

    if keywords:
        keyword_text = json.dumps(keywords.as_list(), ensure_ascii=False)
    else:
        keyword_text = "[] (no reference keywords; leave both keyword lists empty)"

    if is_low_effort:
        effort_note = (
            "NOTE: an automatic check flagged this submission as possibly keyword-stuffed "
            "(reference terms listed with little explanation). Take this into account in "
            "your feedback and ask the student to explain the concepts in their own words."
        )
    else:
        effort_note = "An automatic check found no sign of keyword stuffing."

    return f"""Evaluate this student submission.

REFERENCE KEYWORDS:
{keyword_text}

RUBRIC:
{rubric_text}

INSTRUCTIONS:
1. Put every reference keyword in exactly one of "matched_keywords" or "missing_keywords".
   Use the keyword spelling from the reference list. Do not invent new keywords.
2. A keyword is matched when the concept is present, even if worded differently.
3. Score each rubric dimension within its range.
4. "overall_score" is your overall percentage (0-100) for the submission.
5. Keep the feedback to 2-4 sentences covering strengths and improvements.

{effort_note}

Return your evaluation as a JSON object with this exact structure:
{{
    "matched_keywords": ["keyword", ...],
    "missing_keywords": ["keyword", ...],
    "rubric_scores": {{{rubric_json}}},
    "overall_score": <number 0-100>,
    "feedback": "<constructive feedback>",
    "strengths": ["strength", ...],
    "areas_for_improvement": ["area", ...]
}}

STUDENT SUBMISSION:
{submission_text}"""
