"""
Confidence composition and disposition.
"""

from typing import Mapping, Optional

from .config import ScoringConfig
from .models import Status


def _unit(value) -> float:
    return min(1.0, max(0.0, float(value or 0.0)))


class ConfidenceScorer:
    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def score(self, checks: Mapping[str, float]) -> float:
        """Weighted sum of db_match_score, format_check and extraction_confidence.

        Missing inputs count as 0; inputs and result are clamped to [0, 1].
        """
        c = self.config
        total = (
            _unit(checks.get("db_match_score")) * c.db_weight
            + _unit(checks.get("format_check")) * c.format_weight
            + _unit(checks.get("extraction_confidence")) * c.extraction_weight
        )
        return _unit(total)

    def decide(self, score: float) -> str:
        if score >= self.config.verified_threshold:
            return Status.VERIFIED
        if score >= self.config.manual_threshold:
            return Status.MANUAL_REVIEW
        return Status.REJECTED
