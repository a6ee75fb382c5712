from .exact import ExactMatcher
from .fuzzy import FuzzyMatcher

__all__ = ["ExactMatcher", "FuzzyMatcher"]
