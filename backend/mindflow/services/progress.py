"""
Completion arithmetic shared by dashboards, exports and lesson progress.
"""

from __future__ import annotations


def progress_percent(completed: int, total: int) -> int:
    """Whole-number completion percentage, rounded half up. Zero lessons means 0."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def is_fully_completed(completed: int, total: int) -> bool:
    """A course with no lessons is never completed."""
    return total > 0 and completed >= total
