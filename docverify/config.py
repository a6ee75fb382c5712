"""
Runtime configuration.

All knobs are read from the environment once, when the objects are built,
and then passed explicitly to the components that need them.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError

WEIGHT_TOLERANCE = 1e-6


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class ScoringConfig:
    """Weights and disposition thresholds for the confidence scorer.

    Weights must sum to 1 so the final score stays in [0, 1] without
    renormalization.
    """

    db_weight: float = 0.5
    format_weight: float = 0.25
    extraction_weight: float = 0.25
    verified_threshold: float = 0.85
    manual_threshold: float = 0.6

    def __post_init__(self):
        weights = (self.db_weight, self.format_weight, self.extraction_weight)
        if any(w < 0 for w in weights):
            raise ConfigError(f"Scoring weights must be non-negative, got {weights}")
        if abs(sum(weights) - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigError(f"Scoring weights must sum to 1, got {sum(weights):.6f}")
        for name in ("verified_threshold", "manual_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {value}")
        if self.manual_threshold > self.verified_threshold:
            raise ConfigError("manual_threshold cannot exceed verified_threshold")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ScoringConfig":
        env = os.environ if env is None else env
        return cls(
            db_weight=_env_float(env, "DOCVERIFY_WEIGHT_DB", 0.5),
            format_weight=_env_float(env, "DOCVERIFY_WEIGHT_FORMAT", 0.25),
            extraction_weight=_env_float(env, "DOCVERIFY_WEIGHT_EXTRACTION", 0.25),
            verified_threshold=_env_float(env, "DOCVERIFY_THRESHOLD_VERIFIED", 0.85),
            manual_threshold=_env_float(env, "DOCVERIFY_THRESHOLD_MANUAL", 0.6),
        )


@dataclass(frozen=True)
class MatchingConfig:
    # Reference sets are expected to stay in the low thousands per type.
    candidate_limit: int = 500
    low_confidence: float = 0.6

    def __post_init__(self):
        if self.candidate_limit < 1:
            raise ConfigError("candidate_limit must be at least 1")
        if not 0.0 <= self.low_confidence <= 1.0:
            raise ConfigError("low_confidence must be within [0, 1]")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MatchingConfig":
        env = os.environ if env is None else env
        return cls(
            candidate_limit=_env_int(env, "DOCVERIFY_CANDIDATE_LIMIT", 500),
            low_confidence=_env_float(env, "DOCVERIFY_LOW_CONFIDENCE", 0.6),
        )


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///data/docverify.db"
    rules_file: Optional[Path] = None
    max_workers: int = 4
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        rules_file = env.get("DOCVERIFY_RULES_FILE")
        return cls(
            database_url=env.get("DOCVERIFY_DATABASE_URL") or "sqlite:///data/docverify.db",
            rules_file=Path(rules_file) if rules_file else None,
            max_workers=_env_int(env, "DOCVERIFY_MAX_WORKERS", 4),
            scoring=ScoringConfig.from_env(env),
            matching=MatchingConfig.from_env(env),
        )
