"""Grade Sanchalaak: keyword-coverage grading of student submissions with LLMs."""

__version__ = "0.1.0"
