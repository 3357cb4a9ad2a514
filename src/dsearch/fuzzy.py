"""Fuzzy subsequence matching with relevance scoring.

Every character of the pattern has to appear in the candidate string in the
same order, ignoring case, but not necessarily next to each other. Matches are
scored so that contiguous runs, matches at the start of the string, after a
separator and on camelCase boundaries rank above scattered ones.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

FIRST_CHAR_MATCH_BONUS = 10
MATCH_FOLLOWING_SEPARATOR_BONUS = 20
CAMEL_CASE_MATCH_BONUS = 20
ADJACENT_MATCH_BONUS = 5
UNMATCHED_LEADING_CHAR_PENALTY = -5
MAX_UNMATCHED_LEADING_CHAR_PENALTY = -15

SEPARATORS = frozenset("/-_ .\\")


@dataclass
class Match:
    """A successful match of a pattern against one string."""

    string: str
    index: int
    matched_indexes: list[int] = field(default_factory=list)
    score: int = 0


def _equal_fold(a: str, b: str) -> bool:
    """Compare two characters ignoring case."""
    return a == b or a.casefold() == b.casefold()


def match(pattern: str, string: str, index: int = 0) -> Match | None:
    """Match a pattern against a single string.

    For each pattern character the best scoring position is picked among the
    candidates seen before the next pattern character shows up, so
    ``"tk"`` against ``"The Black Knight"`` prefers the capital ``K``.

    Args:
        pattern: Characters to look for, in order.
        string: Candidate string.
        index: Position of the string in its source sequence.

    Returns:
        Match instance, or None if the string does not contain the pattern.
    """
    if not pattern:
        return None

    result = Match(string=string, index=index)
    pattern_index = 0
    best_score = -1
    matched_index = -1
    adjacent_bonus = 0
    last = ""
    last_index = 0
    length = len(string)

    for j, candidate in enumerate(string):
        if pattern_index >= len(pattern):
            break

        if _equal_fold(candidate, pattern[pattern_index]):
            score = 0
            if j == 0:
                score += FIRST_CHAR_MATCH_BONUS
            if last.islower() and candidate.isupper():
                score += CAMEL_CASE_MATCH_BONUS
            if j != 0 and last in SEPARATORS:
                score += MATCH_FOLLOWING_SEPARATOR_BONUS
            if result.matched_indexes and result.matched_indexes[-1] == last_index:
                # Runs of adjacent matches grow the bonus on every step.
                bonus = adjacent_bonus * 2 + ADJACENT_MATCH_BONUS
                score += bonus
                adjacent_bonus += bonus
            if score > best_score:
                best_score = score
                matched_index = j

        next_pattern = pattern[pattern_index + 1] if pattern_index < len(pattern) - 1 else ""
        next_char = string[j + 1] if j + 1 < length else ""

        # Commit the best position once the next pattern character is coming
        # up or the string is exhausted.
        if (next_char == "" or (next_pattern and _equal_fold(next_pattern, next_char))) and matched_index > -1:
            if not result.matched_indexes:
                penalty = matched_index * UNMATCHED_LEADING_CHAR_PENALTY
                best_score += max(penalty, MAX_UNMATCHED_LEADING_CHAR_PENALTY)
            result.score += best_score
            result.matched_indexes.append(matched_index)
            best_score = -1
            matched_index = -1
            pattern_index += 1

        last_index = j
        last = candidate

    if len(result.matched_indexes) != len(pattern):
        return None

    # Every unmatched character costs one point.
    result.score += len(result.matched_indexes) - length
    return result


def find(pattern: str, strings: Iterable[str]) -> list[Match]:
    """Match a pattern against many strings.

    Args:
        pattern: Characters to look for, in order.
        strings: Candidate strings.

    Returns:
        Matches ordered by score, best first. Strings that do not match are
        left out; ties keep their input order.
    """
    matches = []
    for index, string in enumerate(strings):
        found = match(pattern, string, index)
        if found is not None:
            matches.append(found)
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches
