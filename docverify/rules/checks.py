"""
Format and validity check builders.

Every builder returns a pure function ``check(extracted, today) -> float``
scoring one aspect of a claim in [0, 1]. Rule files refer to builders by
their kind name (see CHECK_KINDS).
"""

import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

CheckFn = Callable[[Mapping[str, Any], date], float]

_MISSING = object()


def is_present(extracted: Mapping[str, Any], field: str) -> bool:
    value = extracted.get(field)
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return True


def parse_date(value: Any) -> Optional[date]:
    """Parse a date, datetime or ISO-8601 string. Returns None if unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _claim_date(extracted: Mapping[str, Any], field: str) -> Any:
    """_MISSING when absent, None when unparseable, else the date."""
    if not is_present(extracted, field):
        return _MISSING
    return parse_date(extracted[field])


def pattern_check(
    field: str,
    regex: str,
    score: float = 1.0,
    missing: float = 0.0,
    invalid: float = 0.0,
    canonical: bool = False,
) -> CheckFn:
    """Score `field` by a full regex match.

    canonical=True strips inner whitespace and uppercases before matching.
    """
    compiled = re.compile(regex)

    def check(extracted, today):
        if not is_present(extracted, field):
            return missing
        value = str(extracted[field]).strip()
        if canonical:
            value = "".join(value.split()).upper()
        return score if compiled.fullmatch(value) else invalid

    return check


def presence_check(
    all_of: Sequence[str] = (),
    any_of: Sequence[Union[str, Sequence[str]]] = (),
    partial: float = 0.0,
    otherwise: float = 0.0,
) -> CheckFn:
    """1.0 when every `all_of` field and at least one `any_of` alternative is present.

    An `any_of` alternative may itself be a list of fields that must all be
    present. `partial` applies when `all_of` holds but no alternative does.
    """
    groups: List[Tuple[str, ...]] = [
        (alt,) if isinstance(alt, str) else tuple(alt) for alt in any_of
    ]

    def check(extracted, today):
        if not all(is_present(extracted, f) for f in all_of):
            return otherwise
        if not groups:
            return 1.0
        if any(all(is_present(extracted, f) for f in group) for group in groups):
            return 1.0
        return partial if all_of else otherwise

    return check


def weighted_presence(weights: Mapping[str, float]) -> CheckFn:
    """Sum of the weights of the fields present, rounded to 4 places and capped at 1.0."""
    if any(float(w) < 0 for w in weights.values()):
        raise ValueError("weights must be non-negative")
    table = {f: float(w) for f, w in weights.items()}

    def check(extracted, today):
        return min(1.0, round(sum(w for f, w in table.items() if is_present(extracted, f)), 4))

    return check


def first_of(checks: Sequence[CheckFn]) -> CheckFn:
    """First non-zero score among `checks`."""
    def check(extracted, today):
        for inner in checks:
            value = inner(extracted, today)
            if value > 0:
                return value
        return 0.0

    return check


def min_of(checks: Sequence[CheckFn]) -> CheckFn:
    def check(extracted, today):
        return min(inner(extracted, today) for inner in checks)

    return check


def expiry_check(field: str, unknown: float = 0.5) -> CheckFn:
    """1.0 while the date in `field` is today or later."""
    def check(extracted, today):
        value = _claim_date(extracted, field)
        if value is _MISSING:
            return unknown
        if value is None:
            return 0.0
        return 1.0 if value >= today else 0.0

    return check


def not_future_check(field: str, future: float = 0.0, missing: float = 1.0) -> CheckFn:
    """Penalize dates after today (incorporation, resolution dates)."""
    def check(extracted, today):
        value = _claim_date(extracted, field)
        if value is _MISSING:
            return missing
        if value is None:
            return future
        return future if value > today else 1.0

    return check


def date_order_check(
    start: str,
    end: str,
    stale_after_days: Optional[int] = None,
    stale: float = 0.4,
) -> CheckFn:
    """1.0 when start <= end; capped at `stale` once `end` is long past."""
    def check(extracted, today):
        start_date = _claim_date(extracted, start)
        end_date = _claim_date(extracted, end)
        if start_date in (_MISSING, None) or end_date in (_MISSING, None):
            return 0.0
        score = 1.0 if start_date <= end_date else 0.0
        if stale_after_days is not None and (today - end_date).days > stale_after_days:
            score = min(score, stale)
        return score

    return check


def recency_check(
    field: str,
    bands: Sequence[Sequence[float]] = ((180, 1.0), (365, 0.6)),
    unknown: float = 0.5,
    stale: float = 0.0,
) -> CheckFn:
    """Score by age in days: the first band whose day limit covers the age wins."""
    ordered = sorted((int(days), float(score)) for days, score in bands)

    def check(extracted, today):
        value = _claim_date(extracted, field)
        if value is _MISSING:
            return unknown
        if value is None:
            return stale
        age = (today - value).days
        for max_days, score in ordered:
            if age <= max_days:
                return score
        return stale

    return check


def coverage_check(
    list_field: str,
    key_field: str,
    requirements: Mapping[str, Sequence[str]],
    unknown: float = 0.5,
) -> CheckFn:
    """Share of the items required for `key_field`'s value found in `list_field`.

    Matching is case-insensitive substring containment.
    """
    lowered = {k.lower(): [r.lower() for r in v] for k, v in requirements.items()}

    def check(extracted, today):
        key = str(extracted.get(key_field) or "").strip().lower()
        required = lowered.get(key, [])
        if not required:
            return unknown
        items = [str(i).lower() for i in (extracted.get(list_field) or [])]
        present = sum(1 for req in required if any(req in item for item in items))
        return present / len(required)

    return check


def keywords_absent(field: str, keywords: Iterable[str], found: float = 0.0) -> CheckFn:
    """1.0 unless one of `keywords` appears in the text (or list of texts) in `field`."""
    banned = [k.lower() for k in keywords]

    def check(extracted, today):
        value = extracted.get(field) or []
        if isinstance(value, str):
            value = [value]
        text = " ".join(str(v) for v in value).lower()
        return found if any(k in text for k in banned) else 1.0

    return check


CHECK_KINDS: Dict[str, Callable[..., CheckFn]] = {
    "pattern": pattern_check,
    "presence": presence_check,
    "weighted_presence": weighted_presence,
    "first_of": first_of,
    "min_of": min_of,
    "expiry": expiry_check,
    "not_future": not_future_check,
    "date_order": date_order_check,
    "recency": recency_check,
    "coverage": coverage_check,
    "keywords_absent": keywords_absent,
}

# Kinds whose "checks" argument holds nested check specs.
COMPOSITE_KINDS = {"first_of", "min_of"}
