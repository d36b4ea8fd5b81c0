"""
Search query orchestration.

Decides per request whether a search is answered by one query or by two
query strategies merged into one result stream, and builds the matching
ResultProvider.
"""

import logging
from typing import Iterable, Optional

from .base import BaseSearchService
from .bundle_provider import SingleSourceBundleProvider
from .include import IncludeResolver
from .merged_provider import MergedBundleProvider
from .params import (
    CATEGORY_SEARCH_HANDLER,
    CONDITION_CATEGORY_CODE_CONDITION,
    CONDITION_CATEGORY_CODE_DIAGNOSIS,
    CONDITION_CATEGORY_SYSTEM_URI,
    SearchParam,
    SearchSpecification,
    Token,
    iter_tokens,
)
from .provider import EmptyBundleProvider, ResultProvider
from .translators import ToFhirTranslator

logger = logging.getLogger(__name__)


class SearchQuery(BaseSearchService):
    """
    Entry point turning a search specification into a ResultProvider.

    Searches carrying a category parameter are split by category code:
    problem-list items are served by the first strategy, encounter
    diagnoses by the second.
    """

    # handler key -> (code system, first strategy code, second strategy code)
    SPLIT_HANDLERS = {
        CATEGORY_SEARCH_HANDLER: (
            CONDITION_CATEGORY_SYSTEM_URI,
            CONDITION_CATEGORY_CODE_CONDITION,
            CONDITION_CATEGORY_CODE_DIAGNOSIS,
        ),
    }

    def get_results(
        self,
        search_spec: SearchSpecification,
        dao,
        translator: ToFhirTranslator,
        include_resolver: Optional[IncludeResolver] = None,
        second_dao=None
    ) -> ResultProvider:
        """
        Build the provider for one search request.

        Args:
            search_spec: Parsed search
            dao: Data access collaborator (used by both strategies unless
                 second_dao is given)
            translator: Record -> FHIR resource translator
            include_resolver: _include/_revinclude resolver
            second_dao: Data access for the second strategy. When given, a
                        search without the split parameter is answered by
                        both strategies merged

        Returns:
            SingleSourceBundleProvider, MergedBundleProvider, or
            EmptyBundleProvider when the split parameter matches neither
            strategy
        """
        for handler_key, (system, first_code, second_code) in self.SPLIT_HANDLERS.items():
            constrained = search_spec.has_parameter(handler_key)
            # unconstrained: both strategies apply; without second_dao they share one data access
            if not constrained and second_dao is None:
                continue

            values = search_spec.get_parameters(handler_key) if constrained else None
            wants_first = self.should_search_explicitly_for(values, first_code, system)
            wants_second = self.should_search_explicitly_for(values, second_code, system)

            if wants_first and wants_second:
                logger.debug(f"Search on {handler_key} spans both strategies, merging results")
                first = SingleSourceBundleProvider(
                    self._narrow(search_spec, handler_key, system, first_code), dao, translator, include_resolver
                )
                second = SingleSourceBundleProvider(
                    self._narrow(search_spec, handler_key, system, second_code),
                    second_dao or dao,
                    translator,
                    include_resolver
                )
                return MergedBundleProvider(first, second, self.page_size_policy)

            if wants_first:
                return SingleSourceBundleProvider(
                    self._narrow(search_spec, handler_key, system, first_code), dao, translator, include_resolver
                )

            if wants_second:
                return SingleSourceBundleProvider(
                    self._narrow(search_spec, handler_key, system, second_code),
                    second_dao or dao,
                    translator,
                    include_resolver
                )

            logger.debug(f"Search on {handler_key} matches no strategy, returning empty results")
            return EmptyBundleProvider(self.page_size_policy)

        return SingleSourceBundleProvider(search_spec, dao, translator, include_resolver)

    @staticmethod
    def should_search_explicitly_for(
        values: Optional[Iterable[SearchParam]],
        code: str,
        system: Optional[str] = CONDITION_CATEGORY_SYSTEM_URI
    ) -> bool:
        """
        Check whether a token search asks for the given code.

        Args:
            values: Registered parameter values, or None when the search
                    does not constrain this parameter
            code: Code to look for
            system: Code system; tokens qualified with another system do
                    not match

        Returns:
            True if values is None or any token carries the code
        """
        if values is None:
            return True

        for token in iter_tokens(values):
            if token.code != code:
                continue
            if token.system is None or system is None or token.system == system:
                return True
        return False

    @staticmethod
    def _narrow(search_spec: SearchSpecification, handler_key: str, system: str, code: str) -> SearchSpecification:
        return search_spec.replace_parameters(handler_key, [SearchParam(value=[Token(code=code, system=system)])])
