"""Progress reporting helpers shared by the driver and the analyzer."""

from typing import Callable

Reporter = Callable[[str], None]
"""Sink for human-readable progress lines (``print`` in scripts)."""

PROGRESS_THRESHOLD: int = 100
"""Loops at or below this many iterations report no decile progress."""


def decile_step(total: int, threshold: int = PROGRESS_THRESHOLD) -> int:
    """Iteration stride between progress lines, or ``0`` for none.

    Example:
        >>> decile_step(1000)
        100
        >>> decile_step(100)
        0
    """
    if total <= threshold:
        return 0
    return max(1, total // 10)


def silent(_line: str) -> None:
    """Reporter that discards every line."""
