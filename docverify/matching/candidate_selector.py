"""
Candidate Selection Logic.

Responsibilities:
- Select a bounded set of candidate records for fuzzy comparison.
- Apply the rule set's cheap pre-filters, falling back to an unfiltered set.

Non-Responsibilities:
- No scoring.
- No similarity computation.
- No match decisions.

Invariant:
The returned set never exceeds the limit. Recall beyond the limit is not
guaranteed when no pre-filter applies.
"""

from typing import List, Tuple

from ..database import AuthoritativeRecord
from ..models import VerificationClaim
from ..normalize import normalize_identifier, normalize_name
from ..repositories.records import Criterion, RecordRepository
from ..rules.checks import parse_date
from ..rules.ruleset import RuleSet


def build_criteria(rule_set: RuleSet, claim: VerificationClaim) -> List[Criterion]:
    """Pre-filter criteria for every candidate filter the claim has a value for."""
    criteria: List[Criterion] = []
    for f in rule_set.candidate_filters:
        value = claim.value(f.claim_field)
        if value is None:
            continue
        if f.mode == "contains":
            fragment = " ".join(normalize_name(value).split()[: max(f.words, 1)])
            if fragment:
                criteria.append((f.record_field, "contains", fragment))
        elif f.mode == "suffix":
            tail = normalize_identifier(value)
            if tail:
                criteria.append((f.record_field, "suffix", tail))
        elif f.mode == "equals":
            day = parse_date(value)
            if day is not None:
                criteria.append((f.record_field, "equals", day))
    return criteria


def select_candidates(
    records: RecordRepository,
    rule_set: RuleSet,
    claim: VerificationClaim,
    limit: int,
) -> Tuple[List[AuthoritativeRecord], bool]:
    """Return (candidates, filtered) where `filtered` tells which tier answered."""
    criteria = build_criteria(rule_set, claim)
    if criteria:
        candidates = records.find_candidates(rule_set.search_types, limit, criteria)
        if candidates:
            return candidates, True
    return records.find_candidates(rule_set.search_types, limit), False
