"""
Abstract base class for paged search result providers.

Callers (the FHIR transport layer) page through a search exclusively via
this interface, regardless of whether results come from one query or from
two merged queries.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class ResultProvider(ABC):
    """Abstract base class for paged search results."""

    def __init__(self):
        self.uuid = str(uuid.uuid4())
        self.published = datetime.now(timezone.utc)

    @abstractmethod
    def get_resources(self, from_index: int, to_index: int) -> List[Dict[str, Any]]:
        """
        Return the page covering the half-open window [from_index, to_index).

        Args:
            from_index: Zero-based start of the window; negative values are
                        treated as 0
            to_index: Exclusive end; a value <= from_index means "to the end"

        Returns:
            Required resources of the window followed by any included
            resources. Empty when the window lies past the end.
        """
        pass

    @abstractmethod
    def size(self) -> Optional[int]:
        """
        Total number of matching resources.

        Returns:
            The count, or None when it is not known. Computed at most once
            per provider instance.
        """
        pass

    @abstractmethod
    def preferred_page_size(self) -> Optional[int]:
        """
        Page size hint for the transport layer.

        Returns:
            Positive page size, or None to let the caller decide
        """
        pass


class EmptyBundleProvider(ResultProvider):
    """Provider for a search that can match nothing."""

    def __init__(self, page_size_policy=None):
        super().__init__()
        self._page_size_policy = page_size_policy

    def get_resources(self, from_index: int, to_index: int) -> List[Dict[str, Any]]:
        return []

    def size(self) -> Optional[int]:
        return 0

    def preferred_page_size(self) -> Optional[int]:
        if self._page_size_policy is None:
            return None
        return self._page_size_policy.preferred_page_size()
