"""
Translators from stored domain records to FHIR resources.

Per-resource field mapping lives outside this package; providers only rely
on the ``to_fhir_resource`` contract defined here.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ToFhirTranslator(ABC):
    """Abstract base class for record -> FHIR resource translators."""

    @abstractmethod
    def to_fhir_resource(self, record: Any) -> Optional[Dict[str, Any]]:
        """
        Translate one stored record.

        Args:
            record: A record returned by a data access object

        Returns:
            FHIR resource as a JSON-compatible dict, or None when the
            record has no FHIR representation
        """
        pass


class ResourceStringTranslator(ToFhirTranslator):
    """
    Translator for rows of the IRIS FHIR repository resource table.

    Rows are ``(ID, ResourceString)`` tuples (or dicts with those keys)
    where ResourceString holds the serialized FHIR JSON.
    """

    def __init__(self, id_column: str = "ID", resource_column: str = "ResourceString"):
        self.id_column = id_column
        self.resource_column = resource_column

    def to_fhir_resource(self, record: Any) -> Optional[Dict[str, Any]]:
        if isinstance(record, dict):
            row_id = record.get(self.id_column)
            resource_string = record.get(self.resource_column)
        else:
            row_id, resource_string = record[0], record[1]

        if not resource_string:
            logger.debug(f"Row {row_id} has no resource content, skipping")
            return None

        resource = json.loads(resource_string)
        if "id" not in resource and row_id is not None:
            resource["id"] = str(row_id)
        return resource
