"""
Error taxonomy for the verification pipeline.

Every failure that reaches a caller is one of these, and every one of them
can be turned into a structured response with error_response().
"""

from typing import Any, Dict, List, Optional


class VerificationError(Exception):
    """Base class for errors surfaced to pipeline callers."""

    kind = "verification_error"
    retryable = False

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = list(details or [])


class InvalidClaim(VerificationError):
    """Claim is malformed or misses required fields. Nothing is persisted."""

    kind = "invalid_claim"

    def __init__(self, errors: List[str]):
        super().__init__(f"Invalid claim: {'; '.join(errors)}", details=errors)
        self.errors = list(errors)


class UnknownDocumentType(InvalidClaim):
    """No rule set is registered for the claimed document type."""

    kind = "unknown_document_type"

    def __init__(self, document_type: Any):
        super().__init__([f"Unknown document_type: {document_type!r}"])
        self.document_type = document_type


class StoreUnavailable(VerificationError):
    """Record store or ledger could not be reached. Safe to retry."""

    kind = "store_unavailable"
    retryable = True


class RuleSetError(ValueError):
    """A rule set definition is inconsistent or references unknown things."""


class ConfigError(ValueError):
    """Scoring or matching configuration is out of range."""


def error_response(exc: VerificationError) -> Dict[str, Any]:
    details = exc.details or [str(exc)]
    return {"error": exc.kind, "details": details, "retryable": exc.retryable}
