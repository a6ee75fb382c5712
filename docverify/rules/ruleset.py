"""
Per-document-type rule set.

A RuleSet is plain configuration: which extracted fields identify the
document, how to look it up exactly, how to score fuzzy candidates, which
format/validity checks apply, and what the response may reveal.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

from .checks import CheckFn

# AuthoritativeRecord columns a rule set may reference; attributes use "attr:<key>".
RECORD_FIELDS = frozenset(
    {"canonical_name", "address", "id_masked", "date_of_birth_or_issue", "lookup_key"}
)


@dataclass(frozen=True)
class FieldWeight:
    """One weighted component of the fuzzy similarity score."""

    claim_field: str
    record_field: str
    weight: float


@dataclass(frozen=True)
class Boost:
    """Additive bonus when a claim value equals the candidate's value.

    kind "date" compares calendar days, kind "equals" compares casefolded text.
    """

    claim_field: str
    record_field: str
    amount: float
    kind: str = "equals"


@dataclass(frozen=True)
class CandidateFilter:
    """Cheap pre-filter narrowing fuzzy candidates.

    mode "contains" matches the first `words` words of the claim value,
    "suffix" matches the tail of the record value, "equals" matches dates.
    """

    claim_field: str
    record_field: str
    mode: str = "contains"
    words: int = 4


@dataclass(frozen=True)
class NamedCheck:
    name: str
    fn: CheckFn = field(compare=False, repr=False)


@dataclass(frozen=True)
class RuleSet:
    document_type: str
    required_fields: Tuple[str, ...] = ()
    identifier_field: Optional[str] = None
    digest_fields: Tuple[str, ...] = ("id_hash",)
    masked_field: Optional[str] = None
    fuzzy_fields: Tuple[FieldWeight, ...] = ()
    boosts: Tuple[Boost, ...] = ()
    candidate_filters: Tuple[CandidateFilter, ...] = ()
    candidate_types: Tuple[str, ...] = ()
    candidate_limit: Optional[int] = None
    fuzzy_threshold: float = 0.65
    checks: Tuple[NamedCheck, ...] = ()
    attribute_keys: Tuple[str, ...] = ()
    response_fields: Tuple[str, ...] = ()
    allow_make_authoritative: bool = False

    @property
    def search_types(self) -> Tuple[str, ...]:
        return self.candidate_types or (self.document_type,)

    def evaluate_checks(self, extracted: Mapping[str, Any], today: date) -> Dict[str, float]:
        """Run every named check; scores are clamped to [0, 1]."""
        return {
            check.name: min(1.0, max(0.0, float(check.fn(extracted, today))))
            for check in self.checks
        }

    def has_fuzzy_input(self, extracted: Mapping[str, Any]) -> bool:
        for fw in self.fuzzy_fields:
            value = extracted.get(fw.claim_field)
            if value is not None and str(value).strip():
                return True
        return False
