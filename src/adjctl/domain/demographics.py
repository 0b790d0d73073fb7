"""Demographic categories and the group totals replacement rule.

Pure functions, no infrastructure dependencies. Consumed by the
propagation service and by model validation.
"""

from __future__ import annotations

from collections.abc import Mapping

DEMOGRAPHIC_CATEGORIES: tuple[str, ...] = (
    "white",
    "african_amer",
    "asian",
    "native_amer",
    "pasifika",
    "others",
)


def validate_counts(counts: Mapping[str, int]) -> dict[str, int]:
    """Check that *counts* only names known categories with non-negative integers.

    Returns a plain dict copy. Raises ``ValueError`` on the first problem.

    Examples:
        >>> validate_counts({"white": 10, "others": 5})
        {'white': 10, 'others': 5}
    """
    result: dict[str, int] = {}
    for category, count in counts.items():
        if category not in DEMOGRAPHIC_CATEGORIES:
            msg = (
                f"Unknown demographic category: {category!r}. "
                f"Expected one of {list(DEMOGRAPHIC_CATEGORIES)}"
            )
            raise ValueError(msg)
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            msg = f"Demographic count for {category!r} must be a non-negative integer"
            raise ValueError(msg)
        result[category] = count
    return result


def replace_totals(snapshot: Mapping[str, int]) -> dict[str, int]:
    """Return the group totals produced by propagating *snapshot*.

    INVARIANT: replace, not accumulate. The group's previous totals play
    no part in the result; the latest flagged unit wins outright.
    """
    return {
        category: snapshot[category] for category in DEMOGRAPHIC_CATEGORIES if category in snapshot
    }
