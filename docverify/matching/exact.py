"""
Exact lookup of a claim against the reference store.

Strategies, in priority order, first hit wins:
1. caller-supplied digest(s), trusted as-is;
2. digest of the raw identifier, computed here;
3. masked identifier equality.
"""

from typing import Iterable, Optional

from ..models import MatchOutcome, MatchType, VerificationClaim
from ..normalize import identifier_digest
from ..repositories.records import RecordRepository
from ..rules.ruleset import RuleSet


class ExactMatcher:
    def __init__(self, records: RecordRepository):
        self.records = records

    def lookup(
        self,
        document_type: str,
        digests: Iterable[str] = (),
        raw_identifier: Optional[str] = None,
        masked: Optional[str] = None,
    ) -> MatchOutcome:
        for supplied in digests:
            record = self.records.find_by_hash(document_type, str(supplied).strip().lower())
            if record is not None:
                return MatchOutcome(True, MatchType.EXACT_HASH, 1.0, record)

        computed = identifier_digest(raw_identifier)
        if computed:
            record = self.records.find_by_hash(document_type, computed)
            if record is not None:
                return MatchOutcome(True, MatchType.EXACT_HASH, 1.0, record)

        if masked:
            record = self.records.find_by_masked(document_type, str(masked).strip())
            if record is not None:
                return MatchOutcome(True, MatchType.EXACT_MASKED, 1.0, record)

        return MatchOutcome.no_match()

    def match(self, rule_set: RuleSet, claim: VerificationClaim) -> MatchOutcome:
        digests = [claim.value(f) for f in rule_set.digest_fields if claim.value(f)]
        raw = claim.value(rule_set.identifier_field) if rule_set.identifier_field else None
        masked = claim.value(rule_set.masked_field) if rule_set.masked_field else None
        return self.lookup(rule_set.document_type, digests, raw, masked)
