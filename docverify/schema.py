import re
from typing import Any, Dict, List

from .rules.checks import is_present
from .rules.loader import RuleSetRegistry

REQUIRED_STR_FIELDS = ["request_id", "document_type"]
OPTIONAL_STR_FIELDS = ["submitted_by"]
CONFIDENCE_FIELDS = ["extraction_confidence", "ocr_confidence"]

_HEX_DIGEST = re.compile(r"[0-9a-fA-F]{64}")


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def validate_claim(data: Dict[str, Any], registry: RuleSetRegistry) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Checks the envelope, then the fields the document type's rule set requires.
    """
    errors: List[str] = []
    if not isinstance(data, dict):
        return ["Claim must be a JSON object"]

    for f in REQUIRED_STR_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    for f in OPTIONAL_STR_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    extracted = data.get("extracted")
    if not isinstance(extracted, dict):
        errors.append("Field 'extracted' must be an object")
        return errors

    for f in CONFIDENCE_FIELDS:
        if f not in extracted or extracted[f] is None:
            continue
        value = extracted[f]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append(f"Field 'extracted.{f}' must be a number")
        elif not 0.0 <= value <= 1.0:
            errors.append(f"Field 'extracted.{f}' must be within [0, 1]")

    document_type = data.get("document_type")
    if not _is_non_empty_str(document_type):
        return errors
    if document_type not in registry:
        errors.append(f"Unknown document_type: {document_type}")
        return errors

    rule_set = registry.get(document_type)
    for f in rule_set.required_fields:
        if not is_present(extracted, f):
            errors.append(f"Missing required field: extracted.{f}")

    # Blank digests count as absent.
    for f in rule_set.digest_fields:
        value = extracted.get(f)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        if not (isinstance(value, str) and _HEX_DIGEST.fullmatch(value.strip())):
            errors.append(f"Field 'extracted.{f}' must be a 64-character hex digest")

    return errors
