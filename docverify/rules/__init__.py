from .loader import RuleSetRegistry, load_registry, load_rule_file, rule_set_from_dict
from .ruleset import Boost, CandidateFilter, FieldWeight, NamedCheck, RuleSet

__all__ = [
    "Boost",
    "CandidateFilter",
    "FieldWeight",
    "NamedCheck",
    "RuleSet",
    "RuleSetRegistry",
    "load_registry",
    "load_rule_file",
    "rule_set_from_dict",
]
