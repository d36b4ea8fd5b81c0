"""
Utility helpers for search result paging.

Provides the result-count sentinel, saturating count arithmetic and a
thread-safe compute-once cell used for memoized provider fields.
"""

import threading
from typing import Any, Callable, Optional

# Largest result count a provider reports. Counts at or above this value
# mean "unknown / unbounded" to the paging layer.
MAX_RESULT_COUNT = 2 ** 31 - 1

UNBOUNDED = MAX_RESULT_COUNT


def is_unbounded(count: Optional[int]) -> bool:
    """Return True when a count is unknown (None) or the unbounded sentinel."""
    return count is None or count >= MAX_RESULT_COUNT


def count_or_unbounded(count: Optional[int]) -> int:
    """Map an unknown (None) count to the unbounded sentinel."""
    if count is None:
        return UNBOUNDED
    return min(count, UNBOUNDED)


def saturating_add(first: Optional[int], second: Optional[int]) -> int:
    """
    Add two result counts, clamping at MAX_RESULT_COUNT.

    Either operand being unknown or unbounded makes the sum unbounded.

    Example:
        >>> saturating_add(3, 4)
        7
        >>> saturating_add(MAX_RESULT_COUNT, 1) == MAX_RESULT_COUNT
        True
    """
    if is_unbounded(first) or is_unbounded(second):
        return UNBOUNDED
    return min(first + second, MAX_RESULT_COUNT)


class ComputeOnce:
    """
    Single-assignment cell with a compute-if-absent accessor.

    The factory runs at most once per cell, even when several threads ask
    for the value at the same time. ``None`` is a valid computed value.
    """

    _UNSET = object()

    def __init__(self, factory: Callable[[], Any]):
        self._factory = factory
        self._value = self._UNSET
        self._lock = threading.Lock()

    @property
    def is_set(self) -> bool:
        return self._value is not self._UNSET

    def get(self) -> Any:
        value = self._value
        if value is not self._UNSET:
            return value

        with self._lock:
            if self._value is self._UNSET:
                self._value = self._factory()
            return self._value

    def peek(self, default: Any = None) -> Any:
        """Return the value if already computed, without computing it."""
        value = self._value
        return default if value is self._UNSET else value
