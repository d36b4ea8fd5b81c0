"""
Resolution of _include / _revinclude resources for a page of results.

Resolvers receive the required resources of one page and return the side
resources to append after them. They never modify the page they are given.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .params import (
    INCLUDE_SEARCH_HANDLER,
    REVERSE_INCLUDE_SEARCH_HANDLER,
    Include,
    SearchSpecification,
    iter_includes,
)

logger = logging.getLogger(__name__)

# Include parameter name -> resource fields holding the referenced resource(s)
INCLUDE_REFERENCE_FIELDS = {
    "subject": ("subject",),
    "patient": ("subject", "patient"),
    "encounter": ("encounter",),
    "context": ("context", "encounter"),
    "location": ("location",),
    "part-of": ("partOf",),
    "participant": ("participant",),
    "performer": ("performer",),
    "requester": ("requester",),
    "owner": ("owner",),
    "based-on": ("basedOn",),
    "has-member": ("hasMember",),
    "related-type": ("related",),
    "result": ("result",),
    "medication": ("medicationReference",),
    "prescription": ("authorizingPrescription",),
    "link": ("link",),
}


def resource_key(resource: Dict[str, Any]) -> Tuple[Any, Any]:
    """Identity of a resource for de-duplication."""
    resource_id = resource.get("id")
    if resource_id is None:
        return ("object", id(resource))
    return (resource.get("resourceType"), str(resource_id))


def iter_references(value: Any) -> Iterator[str]:
    """Yield every ``reference`` string found in a (possibly nested) FHIR element."""
    if isinstance(value, dict):
        reference = value.get("reference")
        if isinstance(reference, str):
            yield reference
            return
        for nested in value.values():
            yield from iter_references(nested)
    elif isinstance(value, list):
        for item in value:
            yield from iter_references(item)


def parse_reference(reference: str) -> Optional[Tuple[str, str]]:
    """
    Split a relative reference into (resource_type, id).

    Example:
        >>> parse_reference("Patient/123")
        ('Patient', '123')
        >>> parse_reference("http://example.org/fhir/Patient/123/_history/2")
        ('Patient', '123')
    """
    parts = [part for part in reference.split("/") if part]
    if "_history" in parts:
        parts = parts[:parts.index("_history")]
    if len(parts) < 2:
        return None
    return parts[-2], parts[-1]


class IncludeResolver(ABC):
    """Abstract base class for include resolution."""

    @abstractmethod
    def get_included_resources(
        self,
        resources: List[Dict[str, Any]],
        search_spec: SearchSpecification
    ) -> List[Dict[str, Any]]:
        """
        Resolve side resources for one page.

        Args:
            resources: Required resources of the page (not modified)
            search_spec: The search that produced the page

        Returns:
            Duplicate-free resources in first-seen order
        """
        pass


class NoopIncludeResolver(IncludeResolver):
    """Resolver for searches without _include or _revinclude."""

    def get_included_resources(self, resources, search_spec):
        return []


class ReferenceIncludeResolver(IncludeResolver):
    """
    Resolves includes by following references between FHIR resources.

    Only the first _include and the first _revinclude entry of a search are
    honoured. Unknown include parameter names are ignored.
    """

    def __init__(
        self,
        fetch_by_reference: Callable[[str, List[str]], Iterable[Dict[str, Any]]],
        reverse_search: Optional[Callable[[str, str, List[str]], Any]] = None
    ):
        """
        Initialize resolver.

        Args:
            fetch_by_reference: ``(resource_type, ids) -> resources`` lookup
                                used for _include
            reverse_search: ``(resource_type, param_name, ids) -> ResultProvider``
                            sub-search used for _revinclude
        """
        self.fetch_by_reference = fetch_by_reference
        self.reverse_search = reverse_search

    def get_included_resources(self, resources, search_spec):
        includes = self._first_entry(search_spec, INCLUDE_SEARCH_HANDLER)
        rev_includes = self._first_entry(search_spec, REVERSE_INCLUDE_SEARCH_HANDLER)

        if not resources or (not includes and not rev_includes):
            return []

        seen = {resource_key(resource) for resource in resources}
        included = []

        def collect(candidates):
            for candidate in candidates or ():
                if candidate is None:
                    continue
                key = resource_key(candidate)
                if key not in seen:
                    seen.add(key)
                    included.append(candidate)

        for include in includes:
            collect(self._handle_include(resources, include))

        for rev_include in rev_includes:
            collect(self._handle_rev_include(resources, rev_include))

        logger.debug(f"Resolved {len(included)} included resources for {len(resources)} results")
        return included

    @staticmethod
    def _first_entry(search_spec: SearchSpecification, key: str) -> List[Include]:
        params = search_spec.get_parameters(key)
        if not params:
            return []
        return list(iter_includes(params[:1]))

    def _handle_include(self, resources, include: Include) -> List[Dict[str, Any]]:
        fields = INCLUDE_REFERENCE_FIELDS.get(include.param_name)
        if fields is None:
            logger.debug(f"Ignoring unsupported _include parameter '{include.param_name}'")
            return []

        ids_by_type: Dict[str, List[str]] = {}
        for resource in resources:
            if include.param_type and resource.get("resourceType") not in (None, include.param_type):
                continue
            for field in fields:
                for reference in iter_references(resource.get(field)):
                    parsed = parse_reference(reference)
                    if parsed is None:
                        continue
                    resource_type, resource_id = parsed
                    if include.target_type and resource_type != include.target_type:
                        continue
                    ids = ids_by_type.setdefault(resource_type, [])
                    if resource_id not in ids:
                        ids.append(resource_id)

        fetched = []
        for resource_type, ids in ids_by_type.items():
            fetched.extend(self.fetch_by_reference(resource_type, ids))
        return fetched

    def _handle_rev_include(self, resources, rev_include: Include) -> List[Dict[str, Any]]:
        if self.reverse_search is None:
            logger.debug(f"No reverse search configured, ignoring _revinclude '{rev_include.param_name}'")
            return []
        if rev_include.param_name not in INCLUDE_REFERENCE_FIELDS:
            logger.debug(f"Ignoring unsupported _revinclude parameter '{rev_include.param_name}'")
            return []

        ids = []
        for resource in resources:
            resource_id = resource.get("id")
            if resource_id is not None and str(resource_id) not in ids:
                ids.append(str(resource_id))
        if not ids:
            return []

        provider = self.reverse_search(rev_include.param_type, rev_include.param_name, ids)
        if provider is None:
            return []
        return provider.get_resources(0, -1)
