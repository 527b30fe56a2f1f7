"""String helpers used for engine asset names and lookups."""

from __future__ import annotations

from itertools import zip_longest

__all__ = ["str_comp", "find_string_token"]

_CASE_GAP = ord(" ")


def str_comp(string_a: str, string_b: str) -> bool:
    """Compare two names, treating characters 32 code points apart as equal.

    This folds ASCII letter case. The comparison stops at the first point
    where ``string_a`` has run out and the characters still agreed.
    """
    for char_a, char_b in zip_longest(string_a, string_b, fillvalue="\0"):
        code_a, code_b = ord(char_a), ord(char_b)
        if code_a not in (code_b, code_b + _CASE_GAP, code_b - _CASE_GAP):
            return False
        if code_a == 0:
            return True
    # Both strings ended together: the terminators match.
    return True


def find_string_token(string: str, token: str, stop_id: int) -> int:
    """Return the index of the ``stop_id``-th occurrence of ``token``.

    Occurrences are counted from 1 and may overlap. Returns -1 when there
    are not that many occurrences, or as soon as the remaining text is
    shorter than a non-empty token.
    """
    found = 0
    for position in range(len(string)):
        if token and position + len(token) > len(string):
            return -1
        if string.startswith(token, position):
            found += 1
            if found == stop_id:
                return position
    return -1