"""Database access for the IRIS FHIR repository."""

from .connection import get_connection, DatabaseConnection
from .search_dao import IrisSearchDao, category_criteria, id_criteria, patient_compartment_criteria

__all__ = [
    'get_connection',
    'DatabaseConnection',
    'IrisSearchDao',
    'category_criteria',
    'id_criteria',
    'patient_compartment_criteria'
]
