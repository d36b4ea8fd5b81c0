"""
Merged search result provider.

Presents two independently paged providers as the single virtual sequence
``first ++ second`` without materializing either side. Used when one FHIR
search is answered by two query strategies (e.g. conditions and diagnoses).
"""

import logging
from typing import Any, Dict, List, Optional

from .base import PageSizePolicy
from .provider import ResultProvider
from .utils import ComputeOnce, count_or_unbounded, is_unbounded, saturating_add

logger = logging.getLogger(__name__)


class MergedBundleProvider(ResultProvider):
    """
    ResultProvider concatenating two ResultProviders.

    Both side sizes are taken once, at construction, because routing a
    window that straddles the boundary needs them up front. Unknown side
    sizes are treated as unbounded.

    Every page is ordered as: required resources from first, required
    resources from second, included resources from first, included
    resources from second.
    """

    def __init__(
        self,
        first: ResultProvider,
        second: ResultProvider,
        page_size_policy: Optional[PageSizePolicy] = None
    ):
        """
        Initialize merged provider.

        Args:
            first: Provider whose results come first
            second: Provider whose results follow
            page_size_policy: Source of the preferred page size
                              (default: PageSizePolicy from configuration)

        Raises:
            ValueError: If either provider is missing
        """
        if first is None or second is None:
            raise ValueError("MergedBundleProvider requires two providers")

        super().__init__()
        self.first = first
        self.second = second
        self.page_size_policy = page_size_policy or PageSizePolicy()

        self.first_size = count_or_unbounded(first.size())
        self.second_size = count_or_unbounded(second.size())

        self._count = ComputeOnce(lambda: saturating_add(self.first_size, self.second_size))
        self._page_size = ComputeOnce(self.page_size_policy.preferred_page_size)

        logger.debug(
            f"Merged search {self.uuid}: first_size={self.first_size} second_size={self.second_size}"
        )

    def size(self) -> Optional[int]:
        return self._count.get()

    def preferred_page_size(self) -> Optional[int]:
        return self._page_size.get()

    def get_resources(self, from_index: int, to_index: int) -> List[Dict[str, Any]]:
        first_result = max(from_index, 0)

        total = self.size()
        if not is_unbounded(total) and first_result > total:
            return []

        last_result = total
        if to_index - first_result > 0:
            last_result = min(last_result, to_index)

        if last_result <= self.first_size:
            logger.debug(f"Merged search {self.uuid}: [{first_result}, {last_result}) within first")
            return self.first.get_resources(first_result, last_result)

        if first_result >= self.first_size:
            logger.debug(f"Merged search {self.uuid}: [{first_result}, {last_result}) within second")
            return self.second.get_resources(first_result - self.first_size, last_result - self.first_size)

        logger.debug(f"Merged search {self.uuid}: [{first_result}, {last_result}) straddles both sources")

        num_from_first = self.first_size - first_result
        num_from_second = last_result - self.first_size

        resources_from_first = self.first.get_resources(first_result, self.first_size)
        resources_from_second = self.second.get_resources(0, num_from_second)

        # required from first -> required from second -> included from first -> included from second
        page = list(resources_from_first[:num_from_first])
        page.extend(resources_from_second[:num_from_second])
        page.extend(resources_from_first[num_from_first:])
        page.extend(resources_from_second[num_from_second:])
        return page
