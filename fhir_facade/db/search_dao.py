"""
IRIS Search Data Access

Executes paged FHIR searches against the IRIS FHIR repository resource
table (HSFHIR_X0001_R.Rsrc by default) with parameterized SQL.

Usage:
    from fhir_facade.db import IrisSearchDao, patient_compartment_criteria

    dao = IrisSearchDao(
        resource_type="Condition",
        criteria=[patient_compartment_criteria]
    )

    rows = dao.fetch_range(search_spec, first_result=0, max_results=10)
    total = dao.count(search_spec)

Windowing uses the IRIS %VID row number over an ordered subquery, so the
same ordering is applied to every page.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from fhir_facade.search.base import PageSizePolicy
from fhir_facade.search.params import (
    CATEGORY_SEARCH_HANDLER,
    COMMON_SEARCH_HANDLER,
    ID_PROPERTY,
    PATIENT_REFERENCE_SEARCH_HANDLER,
    SearchSpecification,
    iter_tokens,
)

from .connection import get_connection

logger = logging.getLogger(__name__)

Criteria = Callable[[SearchSpecification], Tuple[str, List[Any]]]

COMPARTMENT_DELIMITER = ","
COMPARTMENT_ENTRY = f"('{COMPARTMENT_DELIMITER}' || r.Compartments || '{COMPARTMENT_DELIMITER}')"


def _values(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def patient_compartment_criteria(search_spec: SearchSpecification) -> Tuple[str, List[Any]]:
    """
    Restrict results to the compartments of the referenced patients.

    Each registered value is an OR-list of patient references
    (``Patient/123`` or ``123``); separate registrations are AND-ed.

    Compartments holds comma separated references, so the column is
    wrapped in delimiters and matched as a whole entry: ``Patient/1``
    does not match ``Patient/12``.
    """
    clauses, params = [], []
    for param in search_spec.get_parameters(PATIENT_REFERENCE_SEARCH_HANDLER):
        references = _values(param.value)
        if not references:
            continue
        ors = []
        for reference in references:
            reference = str(reference)
            if "/" not in reference:
                reference = f"Patient/{reference}"
            ors.append(f"{COMPARTMENT_ENTRY} LIKE ?")
            params.append(f"%{COMPARTMENT_DELIMITER}{reference}{COMPARTMENT_DELIMITER}%")
        clauses.append("(" + " OR ".join(ors) + ")")
    return " AND ".join(clauses), params


def id_criteria(search_spec: SearchSpecification) -> Tuple[str, List[Any]]:
    """Restrict results to the logical ids given under the common ``_id`` property."""
    clauses, params = [], []
    for param in search_spec.get_parameters(COMMON_SEARCH_HANDLER):
        if param.property_name != ID_PROPERTY:
            continue
        ids = [token.code for token in iter_tokens([param])]
        if not ids:
            continue
        clauses.append("r.ResourceId IN (" + ", ".join("?" for _ in ids) + ")")
        params.extend(ids)
    return " AND ".join(clauses), params


def category_criteria(search_spec: SearchSpecification) -> Tuple[str, List[Any]]:
    """Match category codes inside the stored resource JSON."""
    clauses, params = [], []
    for param in search_spec.get_parameters(CATEGORY_SEARCH_HANDLER):
        codes = [token.code for token in iter_tokens([param])]
        if not codes:
            continue
        clauses.append("(" + " OR ".join("r.ResourceString LIKE ?" for _ in codes) + ")")
        params.extend(f'%"code":"{code}"%' for code in codes)
    return " AND ".join(clauses), params


class IrisSearchDao:
    """
    Data access object for paged searches over one FHIR resource type.

    Provides the fetch_range / count / preferred_page_size contract consumed
    by SingleSourceBundleProvider.
    """

    def __init__(
        self,
        resource_type: str,
        table: str = "HSFHIR_X0001_R.Rsrc",
        columns: Sequence[str] = ("ID", "ResourceString"),
        order_by: str = "ID",
        sort_columns: Optional[Dict[str, str]] = None,
        criteria: Optional[Iterable[Criteria]] = None,
        connection_factory: Optional[Callable[[], Any]] = None,
        page_size_policy: Optional[PageSizePolicy] = None
    ):
        """
        Initialize search DAO.

        Args:
            resource_type: FHIR resource type stored in the ResourceType column
            table: Fully qualified resource table
            columns: Columns returned for each matching row
            order_by: Default (and tie-breaking) sort column
            sort_columns: FHIR sort field -> column mapping
            criteria: Callables contributing WHERE fragments for a search
            connection_factory: Returns a new DBAPI connection (default: get_connection)
            page_size_policy: Source of the preferred page size

        Raises:
            ValueError: If resource_type, table, columns or order_by is empty
        """
        if not resource_type or not table or not columns or not order_by:
            raise ValueError("resource_type, table, columns and order_by are required")

        self.resource_type = resource_type
        self.table = table
        self.columns = list(columns)
        self.order_by = order_by
        self.sort_columns = sort_columns or {}
        self.criteria = list(criteria or [])
        self.connection_factory = connection_factory or get_connection
        self.page_size_policy = page_size_policy or PageSizePolicy()

    @classmethod
    def from_config(cls, resource_type: str, config: Dict[str, Any], **kwargs) -> "IrisSearchDao":
        """Create a DAO using the resource table and paging settings of a loaded configuration."""
        iris_config = (config.get("database") or {}).get("iris") or {}
        if "resource_table" in iris_config:
            kwargs.setdefault("table", iris_config["resource_table"])
        kwargs.setdefault("page_size_policy", PageSizePolicy(config))
        return cls(resource_type, **kwargs)

    def _where(self, search_spec: SearchSpecification) -> Tuple[str, List[Any]]:
        clauses = ["r.ResourceType = ?", "(r.Deleted = 0 OR r.Deleted IS NULL)"]
        params: List[Any] = [self.resource_type]

        for criterion in self.criteria:
            clause, clause_params = criterion(search_spec)
            if clause:
                clauses.append(clause)
                params.extend(clause_params)

        return " AND ".join(clauses), params

    def _order(self, search_spec: SearchSpecification) -> str:
        sort_spec = search_spec.sort_spec
        if sort_spec is None or sort_spec.field not in self.sort_columns:
            return f"r.{self.order_by}"

        direction = "ASC" if sort_spec.ascending else "DESC"
        column = self.sort_columns[sort_spec.field]
        if column == self.order_by:
            return f"r.{column} {direction}"
        return f"r.{column} {direction}, r.{self.order_by}"

    def build_range_query(
        self,
        search_spec: SearchSpecification,
        first_result: int,
        max_results: Optional[int]
    ) -> Tuple[str, List[Any]]:
        """
        Build the windowed SELECT for a search.

        Args:
            search_spec: Search to run
            first_result: Zero-based index of the first row
            max_results: Maximum rows, or None for no limit

        Returns:
            (sql, params) with ? placeholders
        """
        where, params = self._where(search_spec)
        inner_columns = ", ".join(f"r.{column}" for column in self.columns)
        outer_columns = ", ".join(self.columns)

        sql = (
            f"SELECT {outer_columns} FROM ("
            f"SELECT TOP ALL {inner_columns} FROM {self.table} r "
            f"WHERE {where} ORDER BY {self._order(search_spec)}"
            f")"
        )

        first_result = max(first_result, 0)
        if max_results is None:
            sql += " WHERE %VID > ?"
            params.append(first_result)
        else:
            sql += " WHERE %VID BETWEEN ? AND ?"
            params.extend([first_result + 1, first_result + max_results])

        return sql, params

    def build_count_query(self, search_spec: SearchSpecification) -> Tuple[str, List[Any]]:
        where, params = self._where(search_spec)
        return f"SELECT COUNT(*) FROM {self.table} r WHERE {where}", params

    def _execute(self, sql: str, params: List[Any]) -> List[Tuple]:
        connection = self.connection_factory()
        cursor = None
        try:
            cursor = connection.cursor()
            cursor.execute(sql, params)
            return cursor.fetchall()
        except Exception as e:
            logger.error(f"✗ {self.resource_type} search failed: {e}")
            raise
        finally:
            if cursor is not None:
                cursor.close()
            connection.close()

    def fetch_range(
        self,
        search_spec: SearchSpecification,
        first_result: int,
        max_results: Optional[int]
    ) -> List[Tuple]:
        """Return the rows of the window, in search order."""
        if max_results is not None and max_results <= 0:
            return []

        sql, params = self.build_range_query(search_spec, first_result, max_results)
        return self._execute(sql, params)

    def count(self, search_spec: SearchSpecification) -> int:
        sql, params = self.build_count_query(search_spec)
        rows = self._execute(sql, params)
        return int(rows[0][0]) if rows else 0

    def preferred_page_size(self) -> int:
        return self.page_size_policy.preferred_page_size()
