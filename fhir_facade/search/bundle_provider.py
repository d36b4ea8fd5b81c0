"""
Single-source search result provider.

Pages one search specification through one data access object and one
translator, appending included resources after each page's required
resources.
"""

import logging
from typing import Any, Dict, List, Optional

from .include import IncludeResolver, NoopIncludeResolver
from .params import SearchSpecification
from .provider import ResultProvider
from .translators import ToFhirTranslator
from .utils import ComputeOnce, is_unbounded

logger = logging.getLogger(__name__)


class SingleSourceBundleProvider(ResultProvider):
    """
    ResultProvider backed by a single query.

    The data access object must provide ``fetch_range(spec, first_result,
    max_results)``, ``count(spec)`` and ``preferred_page_size()``. Results
    must come back in the same stable order on every call.
    """

    def __init__(
        self,
        search_spec: SearchSpecification,
        dao,
        translator: ToFhirTranslator,
        include_resolver: Optional[IncludeResolver] = None
    ):
        """
        Initialize provider.

        Args:
            search_spec: Search to page through; never mutated here
            dao: Data access collaborator executing the search
            translator: Maps each fetched record to a FHIR resource
            include_resolver: Resolves _include/_revinclude resources for
                              each page (default: none)
        """
        super().__init__()
        self.search_spec = search_spec
        self.dao = dao
        self.translator = translator
        self.include_resolver = include_resolver or NoopIncludeResolver()

        self._count = ComputeOnce(self._compute_count)
        self._page_size = ComputeOnce(self.dao.preferred_page_size)

    def _compute_count(self) -> Optional[int]:
        count = self.dao.count(self.search_spec)
        logger.debug(f"Search {self.uuid} matched {count} resources")
        return count

    def get_resources(self, from_index: int, to_index: int) -> List[Dict[str, Any]]:
        first_result = max(from_index, 0)

        # Only short-circuit on a count that has already been paid for
        known_count = self._count.peek()
        if not is_unbounded(known_count) and first_result >= known_count:
            return []

        max_results = to_index - first_result if to_index > first_result else None

        logger.debug(f"Search {self.uuid}: fetching first_result={first_result} max_results={max_results}")
        records = self.dao.fetch_range(self.search_spec, first_result, max_results)

        resources = [
            resource for resource in (self.translator.to_fhir_resource(record) for record in records)
            if resource is not None
        ]
        if not resources:
            return []

        included = self.include_resolver.get_included_resources(resources, self.search_spec)

        page = list(resources)
        page.extend(included)
        return page

    def size(self) -> Optional[int]:
        return self._count.get()

    def preferred_page_size(self) -> Optional[int]:
        return self._page_size.get()
