"""Local heuristic for keyword-stuffed submissions."""

from dataclasses import dataclass
from typing import Iterable, Optional

from sanchalaak.libs.config_loader import ConfigType, get_config

DEFAULT_WORD_FLOOR = 100
DEFAULT_DENSITY_CEILING = 0.3


@dataclass(frozen=True)
class LowEffortReport:
    is_low_effort: bool
    word_count: int
    keyword_hit_count: int
    density: float

    @property
    def warning(self) -> Optional[str]:
        if not self.is_low_effort:
            return None
        return (
            f"This submission appears to list keywords without explanation "
            f"({self.keyword_hit_count} keyword hits in {self.word_count} words). "
            f"Please review it manually."
        )


class LowEffortDetector:
    """
    Flag submissions that are short and dense with reference keywords.

    Matching here is plain lowercase substring containment. It is kept apart
    from the LLM's semantic matching so paraphrasing cannot hide stuffing.
    """

    def __init__(self, word_floor: int = DEFAULT_WORD_FLOOR,
                 density_ceiling: float = DEFAULT_DENSITY_CEILING):
        if word_floor < 0:
            raise ValueError("word_floor must be non-negative")
        if density_ceiling < 0:
            raise ValueError("density_ceiling must be non-negative")
        self.word_floor = word_floor
        self.density_ceiling = density_ceiling

    @classmethod
    def from_config(cls, configs: ConfigType) -> "LowEffortDetector":
        return cls(
            word_floor=get_config("low_effort.word_floor", configs, default=DEFAULT_WORD_FLOOR),
            density_ceiling=get_config("low_effort.density_ceiling", configs,
                                       default=DEFAULT_DENSITY_CEILING),
        )

    def detect(self, text: str, keywords: Iterable[str]) -> LowEffortReport:
        word_count = len(text.split())
        lowered = text.lower()
        hits = sum(1 for keyword in keywords if keyword and keyword.lower() in lowered)
        density = hits / max(word_count, 1)
        flagged = word_count < self.word_floor and density > self.density_ceiling
        return LowEffortReport(
            is_low_effort=flagged,
            word_count=word_count,
            keyword_hit_count=hits,
            density=density,
        )
