"""
Search parameter containers.

A SearchSpecification is an ordered multi-map from a search handler key to
typed parameter values, plus optional sort and count hints. Several values
may be registered under the same key and insertion order is kept, since
some handlers only consume the first entry.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Tuple

# Search handler keys
INCLUDE_SEARCH_HANDLER = "_include.search.handler"
REVERSE_INCLUDE_SEARCH_HANDLER = "_revinclude.search.handler"
CATEGORY_SEARCH_HANDLER = "category.search.handler"
COMMON_SEARCH_HANDLER = "common.search.handler"
PATIENT_REFERENCE_SEARCH_HANDLER = "patient.reference.search.handler"
DATE_RANGE_SEARCH_HANDLER = "date.range.search.handler"

ID_PROPERTY = "_id"

# Condition category coding
CONDITION_CATEGORY_SYSTEM_URI = "http://terminology.hl7.org/CodeSystem/condition-category"
CONDITION_CATEGORY_CODE_CONDITION = "problem-list-item"
CONDITION_CATEGORY_CODE_DIAGNOSIS = "encounter-diagnosis"


@dataclass(frozen=True)
class Token:
    """A coded search value, optionally qualified by its code system."""
    code: str
    system: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "Token":
        """Parse the FHIR ``system|code`` token syntax."""
        if "|" in value:
            system, code = value.split("|", 1)
            return cls(code=code, system=system or None)
        return cls(code=value)


@dataclass(frozen=True)
class Include:
    """
    An ``_include`` / ``_revinclude`` request.

    ``Condition:subject:Patient`` becomes
    ``Include(param_type="Condition", param_name="subject", target_type="Patient")``.
    """
    param_type: str
    param_name: str
    target_type: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "Include":
        parts = value.split(":")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Invalid include value: '{value}' (expected Type:param[:Target])")
        target = parts[2] if len(parts) > 2 and parts[2] else None
        return cls(param_type=parts[0], param_name=parts[1], target_type=target)


@dataclass(frozen=True)
class SortSpec:
    field: str
    ascending: bool = True


@dataclass(frozen=True)
class SearchParam:
    """One registered value; property_name narrows what the handler applies it to."""
    value: Any
    property_name: Optional[str] = None


class SearchSpecification:
    """Ordered, insertion-significant multi-map of search parameters."""

    def __init__(self):
        self._entries: List[Tuple[str, SearchParam]] = []
        self.sort_spec: Optional[SortSpec] = None
        self.count: Optional[int] = None

    def add_parameter(self, key: str, *args) -> "SearchSpecification":
        """
        Register a value under a handler key.

        Called either as ``add_parameter(key, value)`` or
        ``add_parameter(key, property_name, value)``. Returns self so
        registrations can be chained.
        """
        if len(args) == 1:
            property_name, value = None, args[0]
        elif len(args) == 2:
            property_name, value = args
        else:
            raise ValueError("add_parameter expects (key, value) or (key, property_name, value)")

        self._entries.append((key, SearchParam(value=value, property_name=property_name)))
        return self

    def set_sort_spec(self, sort_spec: Optional[SortSpec]) -> "SearchSpecification":
        self.sort_spec = sort_spec
        return self

    def set_count(self, count: Optional[int]) -> "SearchSpecification":
        if count is not None and count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        self.count = count
        return self

    def get_parameters(self, key: str) -> List[SearchParam]:
        return [param for entry_key, param in self._entries if entry_key == key]

    def has_parameter(self, key: str) -> bool:
        return any(entry_key == key for entry_key, _ in self._entries)

    def handler_keys(self) -> List[str]:
        """Distinct handler keys in first-registration order."""
        seen = []
        for key, _ in self._entries:
            if key not in seen:
                seen.append(key)
        return seen

    def entries(self) -> Iterator[Tuple[str, SearchParam]]:
        return iter(list(self._entries))

    def replace_parameters(self, key: str, params: Iterable[SearchParam]) -> "SearchSpecification":
        """
        Return a copy where every entry under ``key`` is replaced by ``params``.

        The replacement sits where the first replaced entry sat; other
        entries keep their order. The receiver is left untouched.
        """
        narrowed = SearchSpecification()
        narrowed.sort_spec = self.sort_spec
        narrowed.count = self.count

        replaced = False
        for entry_key, param in self._entries:
            if entry_key != key:
                narrowed._entries.append((entry_key, param))
            elif not replaced:
                narrowed._entries.extend((key, p) for p in params)
                replaced = True

        if not replaced:
            narrowed._entries.extend((key, p) for p in params)
        return narrowed

    def __repr__(self) -> str:
        return f"SearchSpecification(entries={self._entries!r}, sort={self.sort_spec!r}, count={self.count!r})"


def iter_tokens(params: Iterable[SearchParam]) -> Iterator[Token]:
    """Flatten token values (single tokens or OR-lists of tokens) of the given params."""
    for param in params:
        value = param.value
        if isinstance(value, Token):
            yield value
        elif isinstance(value, str):
            yield Token.parse(value)
        elif value is not None:
            for item in value:
                yield item if isinstance(item, Token) else Token.parse(item)


def iter_includes(params: Iterable[SearchParam]) -> Iterator[Include]:
    """
    Flatten include values of the given params, preserving order.

    Unordered collections (sets) are sorted so the result is stable
    between runs.
    """
    for param in params:
        value = param.value
        if isinstance(value, (Include, str)):
            value = [value]
        includes = [item if isinstance(item, Include) else Include.parse(item) for item in value or ()]
        if isinstance(value, (set, frozenset)):
            includes.sort(key=lambda include: (include.param_type, include.param_name, include.target_type or ""))
        yield from includes
