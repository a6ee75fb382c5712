"""
Verification Pipeline Orchestrator.

Responsibilities:
- Run one claim through normalize -> exact match -> fuzzy fallback ->
  checks -> score -> decide -> persist -> respond.
- Own one session (one transaction) per claim.
- Turn failures into structured error responses at the boundary.

Non-Responsibilities:
- No similarity math, no SQL, no threshold constants.

Invariant:
A Verification is persisted exactly once per successful run and never for
a failed one.
"""

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import sessionmaker

from .config import MatchingConfig, ScoringConfig, Settings
from .database import Verification, get_session_factory
from .errors import InvalidClaim, UnknownDocumentType, VerificationError, error_response
from .logger import get_logger
from .matching import ExactMatcher, FuzzyMatcher
from .models import MatchOutcome, MatchType, PipelineState, VerificationClaim
from .normalize import identifier_digest, normalize_name
from .repositories import RecordRepository, VerificationLedger, store_errors
from .rules.loader import RuleSetRegistry, load_registry
from .rules.ruleset import RuleSet
from .schema import validate_claim
from .scoring import ConfidenceScorer

logger = get_logger()


def _fmt(score: float) -> str:
    return f"{score:.2f}"


def build_reasons(
    checks: Mapping[str, float],
    outcome: MatchOutcome,
    extraction_confidence: float,
    low_confidence: float,
) -> List[str]:
    reasons = []
    for name, score in checks.items():
        if score >= 1.0:
            reasons.append(f"{name}_ok")
        elif score > 0:
            reasons.append(f"{name}_partial_{_fmt(score)}")
        else:
            reasons.append(f"{name}_failed")
    if outcome.match_type == MatchType.UPSERTED:
        reasons.append("record_made_authoritative")
    elif outcome.matched and outcome.match_type == MatchType.FUZZY:
        reasons.append(f"fuzzy_db_match_score_{_fmt(outcome.score)}")
    elif outcome.matched:
        reasons.append("exact_db_match")
    if extraction_confidence < low_confidence:
        reasons.append("low_extraction_confidence")
    if not outcome.matched:
        reasons.append("no_db_match_found")
    return reasons


def _json_value(value: Any) -> Any:
    """JSON-safe copy of a claim or record value; dates become ISO strings."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_value(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def matched_record_view(rule_set: RuleSet, outcome: MatchOutcome) -> Optional[Dict[str, Any]]:
    """Non-sensitive view of the matched record for the response."""
    if not outcome.matched or outcome.record is None:
        return None
    record = outcome.record
    view = {
        "record_id": record.record_id,
        "match_type": outcome.match_type,
        "id_masked": record.id_masked,
    }
    for name in rule_set.response_fields:
        key = name[len("attr:"):] if name.startswith("attr:") else name
        view[key] = _json_value(record.field_value(name))
    return view


class VerificationPipeline:
    def __init__(
        self,
        session_factory: sessionmaker,
        registry: Optional[RuleSetRegistry] = None,
        scoring: Optional[ScoringConfig] = None,
        matching: Optional[MatchingConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_workers: int = 4,
    ):
        self.session_factory = session_factory
        self.registry = registry or load_registry()
        self.scorer = ConfidenceScorer(scoring)
        self.matching = matching or MatchingConfig()
        self.clock = clock
        self.max_workers = max_workers

    @classmethod
    def from_settings(cls, settings: Settings) -> "VerificationPipeline":
        return cls(
            session_factory=get_session_factory(settings.database_url),
            registry=load_registry(settings.rules_file),
            scoring=settings.scoring,
            matching=settings.matching,
            max_workers=settings.max_workers,
        )

    def verify(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Run the pipeline for one claim payload.

        Raises InvalidClaim for bad input and StoreUnavailable when the
        store or ledger fails; nothing is persisted in either case.
        """
        errors = validate_claim(payload, self.registry)
        if errors:
            document_type = payload.get("document_type") if isinstance(payload, Mapping) else None
            if isinstance(document_type, str) and document_type.strip() and document_type not in self.registry:
                raise UnknownDocumentType(document_type)
            raise InvalidClaim(errors)

        claim = VerificationClaim.from_payload(payload)
        rule_set = self.registry.get(claim.document_type)
        state = PipelineState.RECEIVED
        logger.record_attempt(rule_set.document_type)

        session = self.session_factory()
        try:
            records = RecordRepository(session)
            outcome = ExactMatcher(records).match(rule_set, claim)
            state = PipelineState.EXACT_MATCH_ATTEMPTED

            if not outcome.matched:
                outcome = FuzzyMatcher(records, self.matching).match(rule_set, claim)
                state = PipelineState.FUZZY_MATCH_ATTEMPTED

            if not outcome.matched and self._wants_authoritative(rule_set, claim):
                outcome = self._make_authoritative(records, rule_set, claim)

            now = self.clock()
            checks = rule_set.evaluate_checks(claim.extracted, now.date())
            scores: Dict[str, float] = dict(checks)
            scores["format_check"] = sum(checks.values()) / len(checks) if checks else 0.0
            scores["db_match_score"] = outcome.score if outcome.matched else 0.0
            scores["extraction_confidence"] = claim.extraction_confidence
            state = PipelineState.CHECKS_COMPUTED

            final_confidence = self.scorer.score(scores)
            status = self.scorer.decide(final_confidence)
            state = PipelineState.SCORED

            reasons = build_reasons(checks, outcome, claim.extraction_confidence, self.matching.low_confidence)
            verification = Verification(
                verification_id=f"ver-{uuid.uuid4()}",
                request_id=claim.request_id,
                submitted_by=claim.submitted_by,
                document_type=rule_set.document_type,
                extracted=_json_value(claim.extracted),
                checks=scores,
                matched_record_id=outcome.record_reference if outcome.matched else None,
                match_type=outcome.match_type,
                final_confidence=final_confidence,
                status=status,
                reasons=reasons,
                created_at=now,
            )
            VerificationLedger(session).append(verification)
            with store_errors("commit"):
                session.commit()
            state = PipelineState.PERSISTED
        except VerificationError as e:
            session.rollback()
            logger.record_failure(rule_set.document_type, e.kind)
            logger.error(
                "Verification aborted",
                request_id=claim.request_id,
                document_type=rule_set.document_type,
                state=state,
                error=str(e),
            )
            raise
        finally:
            session.close()

        logger.record_outcome(rule_set.document_type, status, outcome.match_type)
        logger.info(
            "Verification persisted",
            verification_id=verification.verification_id,
            request_id=claim.request_id,
            document_type=rule_set.document_type,
            status=status,
            final_confidence=round(final_confidence, 4),
            match_type=outcome.match_type,
        )
        return {
            "verification_id": verification.verification_id,
            "status": status,
            "final_confidence": round(final_confidence, 4),
            "scores": scores,
            "matched_record": matched_record_view(rule_set, outcome),
            "reasons": reasons,
            "timestamp": now.isoformat(),
        }

    def handle(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """verify(), but failures come back as structured error responses."""
        try:
            return self.verify(payload)
        except VerificationError as e:
            return error_response(e)
        except Exception as e:
            logger.critical("Unexpected pipeline failure", error=repr(e))
            return {"error": "internal_error", "details": [e.__class__.__name__], "retryable": False}

    def verify_many(self, payloads: Sequence[Mapping[str, Any]], max_workers: Optional[int] = None) -> List[Dict[str, Any]]:
        """Process claims concurrently; responses keep input order."""
        workers = max_workers or self.max_workers
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.handle, payloads))

    @staticmethod
    def _wants_authoritative(rule_set: RuleSet, claim: VerificationClaim) -> bool:
        return rule_set.allow_make_authoritative and claim.extracted.get("make_authoritative") is True

    def _make_authoritative(self, records: RecordRepository, rule_set: RuleSet, claim: VerificationClaim) -> MatchOutcome:
        name_field = rule_set.fuzzy_fields[0].claim_field if rule_set.fuzzy_fields else "name"
        name = claim.value(name_field) or ""
        masked = claim.value(rule_set.masked_field) if rule_set.masked_field else None
        seed_id = masked or f"{name}|{claim.value('dob') or ''}|{claim.request_id}"
        id_hash = identifier_digest(seed_id)
        record, created = records.upsert(
            rule_set.document_type,
            id_hash,
            {
                "lookup_key": f"{rule_set.document_type}-{id_hash[:8]}",
                "id_masked": masked,
                "canonical_name": normalize_name(name),
                "date_of_birth_or_issue": claim.value("dob"),
                "address": claim.value("address"),
                "attributes": {k: _json_value(claim.extracted[k]) for k in rule_set.attribute_keys if k in claim.extracted},
                "source": "ingest_make_authoritative",
            },
        )
        logger.warning(
            "Claim made authoritative",
            request_id=claim.request_id,
            document_type=rule_set.document_type,
            record_id=record.record_id,
            created=created,
        )
        return MatchOutcome(True, MatchType.UPSERTED, 1.0, record)
