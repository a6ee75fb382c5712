"""
Rule set loading and validation.

Rule sets are declared as plain dicts (built-ins) or JSON files (deployment
overrides) and turned into RuleSet values here. Anything inconsistent is
rejected at load time with RuleSetError, never at verification time.
"""

import inspect
import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ..errors import RuleSetError, UnknownDocumentType
from .builtin import BUILTIN_RULE_SETS
from .checks import CHECK_KINDS, COMPOSITE_KINDS, CheckFn
from .ruleset import (
    RECORD_FIELDS,
    Boost,
    CandidateFilter,
    FieldWeight,
    NamedCheck,
    RuleSet,
)

WEIGHT_TOLERANCE = 1e-6
BOOST_KINDS = {"date", "equals"}
FILTER_MODES = {"contains", "suffix", "equals"}


def build_check(spec: Mapping[str, Any], where: str) -> CheckFn:
    spec = dict(spec)
    kind = spec.pop("kind", None)
    spec.pop("name", None)
    builder = CHECK_KINDS.get(kind)
    if builder is None:
        raise RuleSetError(f"{where}: unknown check kind {kind!r}")
    if kind in COMPOSITE_KINDS:
        nested = spec.get("checks") or []
        if not nested:
            raise RuleSetError(f"{where}: '{kind}' needs a non-empty 'checks' list")
        spec["checks"] = [build_check(s, f"{where}.{kind}[{i}]") for i, s in enumerate(nested)]
    accepted = inspect.signature(builder).parameters
    unknown = sorted(set(spec) - set(accepted))
    if unknown:
        raise RuleSetError(f"{where}: unexpected arguments for '{kind}': {unknown}")
    try:
        return builder(**spec)
    except (TypeError, ValueError, re.error) as e:
        raise RuleSetError(f"{where}: invalid '{kind}' check: {e}") from e


def _check_record_field(name: str, attribute_keys: Iterable[str], where: str) -> None:
    if name.startswith("attr:"):
        key = name[len("attr:"):]
        if key not in attribute_keys:
            raise RuleSetError(f"{where}: attribute {key!r} is not declared in attribute_keys")
    elif name not in RECORD_FIELDS:
        raise RuleSetError(f"{where}: unknown record field {name!r}")


def rule_set_from_dict(data: Mapping[str, Any]) -> RuleSet:
    """Build and validate a RuleSet from its dict declaration."""
    try:
        return _build_rule_set(data)
    except RuleSetError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise RuleSetError(f"Malformed rule set {data.get('document_type')!r}: {e}") from e


def _build_rule_set(data: Mapping[str, Any]) -> RuleSet:
    document_type = str(data.get("document_type") or "").strip().upper()
    if not document_type:
        raise RuleSetError("Rule set is missing document_type")
    where = f"rule set {document_type}"
    attribute_keys = tuple(data.get("attribute_keys", ()))

    fuzzy_fields = tuple(
        FieldWeight(f["claim_field"], f["record_field"], float(f["weight"]))
        for f in data.get("fuzzy_fields", ())
    )
    if fuzzy_fields:
        total = sum(f.weight for f in fuzzy_fields)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise RuleSetError(f"{where}: fuzzy field weights must sum to 1, got {total:.4f}")
        if any(f.weight < 0 for f in fuzzy_fields):
            raise RuleSetError(f"{where}: fuzzy field weights must be non-negative")
    for f in fuzzy_fields:
        _check_record_field(f.record_field, attribute_keys, f"{where} fuzzy field")

    boosts = tuple(
        Boost(b["claim_field"], b["record_field"], float(b["amount"]), b.get("kind", "equals"))
        for b in data.get("boosts", ())
    )
    for b in boosts:
        if b.kind not in BOOST_KINDS:
            raise RuleSetError(f"{where}: unknown boost kind {b.kind!r}")
        if not 0.0 <= b.amount <= 1.0:
            raise RuleSetError(f"{where}: boost amount must be within [0, 1]")
        _check_record_field(b.record_field, attribute_keys, f"{where} boost")

    filters = tuple(
        CandidateFilter(f["claim_field"], f["record_field"], f.get("mode", "contains"), int(f.get("words", 4)))
        for f in data.get("candidate_filters", ())
    )
    for f in filters:
        if f.mode not in FILTER_MODES:
            raise RuleSetError(f"{where}: unknown candidate filter mode {f.mode!r}")
        _check_record_field(f.record_field, attribute_keys, f"{where} candidate filter")

    checks = []
    for i, spec in enumerate(data.get("checks", ())):
        name = spec.get("name")
        if not name:
            raise RuleSetError(f"{where}: check #{i} has no name")
        checks.append(NamedCheck(name, build_check(spec, f"{where} check '{name}'")))
    names = [c.name for c in checks]
    if len(set(names)) != len(names):
        raise RuleSetError(f"{where}: duplicate check names")
    if {"format_check", "db_match_score", "extraction_confidence"} & set(names):
        raise RuleSetError(f"{where}: check names may not shadow pipeline scores")

    for name in data.get("response_fields", ()):
        _check_record_field(name, attribute_keys, f"{where} response field")

    threshold = float(data.get("fuzzy_threshold", 0.65))
    if not 0.0 <= threshold <= 1.0:
        raise RuleSetError(f"{where}: fuzzy_threshold must be within [0, 1]")
    limit = data.get("candidate_limit")
    if limit is not None and int(limit) < 1:
        raise RuleSetError(f"{where}: candidate_limit must be at least 1")

    return RuleSet(
        document_type=document_type,
        required_fields=tuple(data.get("required_fields", ())),
        identifier_field=data.get("identifier_field"),
        digest_fields=tuple(data.get("digest_fields", ("id_hash",))),
        masked_field=data.get("masked_field"),
        fuzzy_fields=fuzzy_fields,
        boosts=boosts,
        candidate_filters=filters,
        candidate_types=tuple(t.upper() for t in data.get("candidate_types", ())),
        candidate_limit=int(limit) if limit is not None else None,
        fuzzy_threshold=threshold,
        checks=tuple(checks),
        attribute_keys=attribute_keys,
        response_fields=tuple(data.get("response_fields", ())),
        allow_make_authoritative=bool(data.get("allow_make_authoritative", False)),
    )


class RuleSetRegistry:
    """Rule sets keyed by document type."""

    def __init__(self, rule_sets: Iterable[RuleSet] = ()):
        self._rule_sets: Dict[str, RuleSet] = {}
        for rule_set in rule_sets:
            self.register(rule_set)

    def register(self, rule_set: RuleSet) -> None:
        """Add or replace the rule set for its document type."""
        self._rule_sets[rule_set.document_type] = rule_set

    def get(self, document_type: Any) -> RuleSet:
        key = str(document_type or "").strip().upper()
        try:
            return self._rule_sets[key]
        except KeyError:
            raise UnknownDocumentType(document_type)

    def __contains__(self, document_type: Any) -> bool:
        return str(document_type or "").strip().upper() in self._rule_sets

    def __iter__(self) -> Iterator[RuleSet]:
        return iter(self._rule_sets.values())

    def __len__(self) -> int:
        return len(self._rule_sets)

    @property
    def document_types(self) -> List[str]:
        return sorted(self._rule_sets)


def load_rule_file(path: Path) -> List[RuleSet]:
    """Read rule sets from a JSON file: a list, or {"rule_sets": [...]}."""
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise RuleSetError(f"Cannot read rule file {path}: {e}") from e
    if isinstance(raw, dict):
        raw = raw.get("rule_sets")
    if not isinstance(raw, list):
        raise RuleSetError(f"Rule file {path} must hold a list of rule sets")
    return [rule_set_from_dict(item) for item in raw]


def load_registry(rules_file: Optional[Path] = None) -> RuleSetRegistry:
    """Built-in rule sets, overridden per document type by `rules_file`."""
    registry = RuleSetRegistry(rule_set_from_dict(d) for d in BUILTIN_RULE_SETS)
    if rules_file is not None:
        for rule_set in load_rule_file(rules_file):
            registry.register(rule_set)
    return registry
