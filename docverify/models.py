"""
Transient value types passed between pipeline stages.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .database import AuthoritativeRecord


class Status:
    VERIFIED = "VERIFIED"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    REJECTED = "REJECTED"

    ALL = (VERIFIED, MANUAL_REVIEW, REJECTED)

    # REJECTED < MANUAL_REVIEW < VERIFIED
    RANK = {REJECTED: 0, MANUAL_REVIEW: 1, VERIFIED: 2}


class MatchType:
    EXACT_HASH = "exact_hash"
    EXACT_MASKED = "exact_masked"
    FUZZY = "fuzzy"
    UPSERTED = "upserted"
    NONE = "none"


class PipelineState:
    RECEIVED = "RECEIVED"
    EXACT_MATCH_ATTEMPTED = "EXACT_MATCH_ATTEMPTED"
    FUZZY_MATCH_ATTEMPTED = "FUZZY_MATCH_ATTEMPTED"
    CHECKS_COMPUTED = "CHECKS_COMPUTED"
    SCORED = "SCORED"
    PERSISTED = "PERSISTED"


@dataclass(frozen=True)
class VerificationClaim:
    document_type: str
    request_id: str
    extracted: Dict[str, Any]
    submitted_by: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "VerificationClaim":
        """Build a claim from an already shape-validated payload."""
        return cls(
            document_type=str(payload["document_type"]).upper(),
            request_id=str(payload["request_id"]),
            extracted=dict(payload.get("extracted") or {}),
            submitted_by=payload.get("submitted_by"),
        )

    def value(self, key: str) -> Any:
        """Extracted value, with blank strings treated as absent."""
        value = self.extracted.get(key)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def extraction_confidence(self) -> float:
        raw = self.extracted.get("extraction_confidence")
        if raw is None:
            raw = self.extracted.get("ocr_confidence")
        if raw is None:
            return 0.0
        return min(1.0, max(0.0, float(raw)))


@dataclass
class MatchOutcome:
    matched: bool
    match_type: str = MatchType.NONE
    score: float = 0.0
    record: Optional[AuthoritativeRecord] = field(default=None, repr=False)

    @property
    def record_reference(self) -> Optional[int]:
        return self.record.record_id if self.record is not None else None

    @classmethod
    def no_match(cls) -> "MatchOutcome":
        return cls(matched=False)
