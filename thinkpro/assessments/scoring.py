"""
Scoring rules: answer correctness, percentage and letter grade bands.
"""

from typing import List, Sequence, Tuple

# Grade cutoffs, highest first; the first matching band wins.
GRADE_BANDS: Tuple[Tuple[float, str], ...] = (
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
    (30, "D"),
)
FAILING_GRADE = "F"
GRADE_SCALE: List[str] = [grade for _, grade in GRADE_BANDS] + [FAILING_GRADE]


def answers_match(selected: Sequence[int], correct: Sequence[int]) -> bool:
    """
    Whether a selection is correct: the set of selected indices equals the
    set of correct indices. Order and repeated indices do not matter.
    """
    return set(selected) == set(correct)


def compute_percentage(obtained: float, total: float) -> float:
    """Unrounded percentage of ``obtained`` over ``total`` (0 when total is 0)."""
    if not total:
        return 0.0
    return obtained / total * 100


def grade_for_percentage(percentage: float) -> str:
    for cutoff, grade in GRADE_BANDS:
        if percentage >= cutoff:
            return grade
    return FAILING_GRADE


def score(obtained: float, total: float) -> Tuple[float, str]:
    """
    Percentage (rounded to two decimals) and letter grade for a result.

    The grade is derived from the unrounded percentage, so 89.999 stays an A.

    Returns:
        ``(percentage, grade)``
    """
    percentage = compute_percentage(obtained, total)
    return round(percentage, 2), grade_for_percentage(percentage)
