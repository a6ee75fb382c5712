"""
Scoring and selection of fuzzy candidates.

Responsibilities:
- Score each candidate by weighted multi-field similarity plus boosts.
- Pick the best candidate and apply the rule set's acceptance threshold.

Non-Responsibilities:
- No exact lookups.
- No confidence composition or disposition.

Invariant:
A candidate scoring below the rule set's threshold is never reported as a match.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import MatchingConfig
from ..database import AuthoritativeRecord
from ..logger import get_logger
from ..models import MatchOutcome, MatchType, VerificationClaim
from ..repositories.records import RecordRepository
from ..rules.ruleset import RuleSet
from .candidate_selector import select_candidates
from .features import edit_similarity, same_day, same_text

logger = get_logger()


@dataclass
class ScoredCandidate:
    record: AuthoritativeRecord
    score: float
    breakdown: Dict[str, float] = field(default_factory=dict)


def score_candidate(rule_set: RuleSet, claim: VerificationClaim, record: AuthoritativeRecord) -> ScoredCandidate:
    breakdown: Dict[str, float] = {}
    total = 0.0
    for fw in rule_set.fuzzy_fields:
        similarity = edit_similarity(claim.value(fw.claim_field), record.field_value(fw.record_field))
        breakdown[fw.claim_field] = similarity
        total += fw.weight * similarity
    for boost in rule_set.boosts:
        claimed = claim.value(boost.claim_field)
        stored = record.field_value(boost.record_field)
        hit = same_day(claimed, stored) if boost.kind == "date" else same_text(claimed, stored)
        if hit:
            breakdown[f"boost:{boost.claim_field}"] = boost.amount
            total += boost.amount
    return ScoredCandidate(record, min(1.0, total), breakdown)


def best_candidate(
    rule_set: RuleSet, claim: VerificationClaim, candidates: List[AuthoritativeRecord]
) -> Optional[ScoredCandidate]:
    """Highest score; the earliest candidate wins ties."""
    best: Optional[ScoredCandidate] = None
    for record in candidates:
        scored = score_candidate(rule_set, claim, record)
        if best is None or scored.score > best.score:
            best = scored
    return best


class FuzzyMatcher:
    def __init__(self, records: RecordRepository, config: Optional[MatchingConfig] = None):
        self.records = records
        self.config = config or MatchingConfig()

    def match(self, rule_set: RuleSet, claim: VerificationClaim) -> MatchOutcome:
        if not rule_set.has_fuzzy_input(claim.extracted):
            return MatchOutcome.no_match()

        limit = rule_set.candidate_limit or self.config.candidate_limit
        candidates, filtered = select_candidates(self.records, rule_set, claim, limit)
        best = best_candidate(rule_set, claim, candidates)
        logger.debug(
            "Fuzzy candidates scored",
            document_type=rule_set.document_type,
            request_id=claim.request_id,
            candidates=len(candidates),
            filtered=filtered,
            best_score=round(best.score, 4) if best else None,
            breakdown=best.breakdown if best else None,
        )
        if best is None or best.score < rule_set.fuzzy_threshold:
            return MatchOutcome.no_match()
        return MatchOutcome(True, MatchType.FUZZY, best.score, best.record)
