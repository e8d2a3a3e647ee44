"""
Header Similarity Strategies.

The Field Matcher compares every source column header with every name a schema field
is known by. How two strings are compared lives behind the single-method
SimilarityStrategy protocol so an alternative algorithm can be swapped in without
touching detection or mapping.

Default strategy (TieredSimilarity):
    1. Exact: the normalized strings are equal                      -> 1.0
    2. Contains: one normalized string contains the other           -> 0.6
    3. Fuzzy: Jaccard overlap of word tokens, scaled by 0.5          -> (0, 0.5]
    4. Otherwise                                                     -> 0.0

Normalization lowercases and strips punctuation and whitespace, so "Agent_Name",
"agent name" and "AgentName" are all "agentname". Tokens additionally split
camelCase, so "daysPastDue" and "Days Past Due" share all three tokens.
"""

import re
from typing import List, Protocol, Set, runtime_checkable


# =============================================================================
# Constants
# =============================================================================

EXACT_WEIGHT: float = 1.0
CONTAINMENT_WEIGHT: float = 0.6

# Upper bound of the fuzzy tier; kept below CONTAINMENT_WEIGHT so a partial token
# overlap never outranks a containment match.
FUZZY_MAX_WEIGHT: float = 0.5

_NON_ALNUM = re.compile(r"[\W_]+", re.UNICODE)
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


# =============================================================================
# Normalization Helpers
# =============================================================================


def normalize_header(text: str) -> str:
    """
    Lowercase a header and strip everything that is not a letter or digit.

    Example:
        >>> normalize_header("Agent_Name ")
        'agentname'
    """
    return _NON_ALNUM.sub("", str(text).lower())


def tokenize_header(text: str) -> List[str]:
    """
    Split a header into lowercase word tokens.

    camelCase and PascalCase boundaries count as separators, as do whitespace and
    punctuation.

    Example:
        >>> tokenize_header("daysPastDue")
        ['days', 'past', 'due']
        >>> tokenize_header("Follow-Up Status")
        ['follow', 'up', 'status']
    """
    spaced = _CAMEL_BOUNDARY.sub(" ", str(text))
    return [token for token in _NON_ALNUM.split(spaced.lower()) if token]


def token_overlap(a: str, b: str) -> float:
    """Jaccard similarity of the token sets of two headers, in [0, 1]."""
    tokens_a: Set[str] = set(tokenize_header(a))
    tokens_b: Set[str] = set(tokenize_header(b))
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


# =============================================================================
# Strategies
# =============================================================================


@runtime_checkable
class SimilarityStrategy(Protocol):
    """Scores how alike a column header and a field name are, in [0, 1]."""

    def score(self, a: str, b: str) -> float: ...


class TieredSimilarity:
    """
    Exact, then containment, then fuzzy token overlap.

    Args:
        containment_weight: Weight of a containment match.
        fuzzy_max_weight: Weight of a fuzzy match with complete token overlap.
    """

    def __init__(
        self,
        containment_weight: float = CONTAINMENT_WEIGHT,
        fuzzy_max_weight: float = FUZZY_MAX_WEIGHT,
    ) -> None:
        self.containment_weight = containment_weight
        self.fuzzy_max_weight = fuzzy_max_weight

    def score(self, a: str, b: str) -> float:
        norm_a = normalize_header(a)
        norm_b = normalize_header(b)
        if not norm_a or not norm_b:
            return 0.0

        if norm_a == norm_b:
            return EXACT_WEIGHT

        if norm_a in norm_b or norm_b in norm_a:
            return self.containment_weight

        return max(0.0, self.fuzzy_max_weight * token_overlap(a, b))


class ExactSimilarity:
    """Normalized equality only; useful when sources are known to be clean."""

    def score(self, a: str, b: str) -> float:
        norm_a = normalize_header(a)
        return EXACT_WEIGHT if norm_a and norm_a == normalize_header(b) else 0.0


DEFAULT_STRATEGY: SimilarityStrategy = TieredSimilarity()
