"""
Text utility functions.
"""
from typing import List


def normalize_answer(text: str) -> str:
    """
    Normalize an answer for comparison: trimmed and lower-cased.

    Args:
        text: The answer text

    Returns:
        Normalized text ('' for None)
    """
    if not text:
        return ""
    return text.strip().lower()


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def calculate_similarity(expected: str, provided: str) -> float:
    """
    Normalized similarity in [0, 1] between two answers.

    1 - distance / max(len(expected), len(provided)) over normalized text.
    Two empty strings are identical.
    """
    expected = normalize_answer(expected)
    provided = normalize_answer(provided)

    max_len = max(len(expected), len(provided))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein_distance(expected, provided) / max_len


def split_alternatives(text: str) -> List[str]:
    """
    Split a ';'-separated list of accepted answers, dropping empty entries.

    Args:
        text: e.g. "car; automobile"

    Returns:
        Trimmed, non-empty alternatives
    """
    if not text:
        return []
    return [part.strip() for part in text.split(";") if part.strip()]
