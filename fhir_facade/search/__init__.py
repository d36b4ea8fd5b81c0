"""Paged FHIR search result composition."""

from .base import PageSizePolicy
from .bundle_provider import SingleSourceBundleProvider
from .include import IncludeResolver, NoopIncludeResolver, ReferenceIncludeResolver
from .merged_provider import MergedBundleProvider
from .params import Include, SearchParam, SearchSpecification, SortSpec, Token
from .provider import EmptyBundleProvider, ResultProvider
from .query import SearchQuery
from .translators import ResourceStringTranslator, ToFhirTranslator
from .utils import MAX_RESULT_COUNT, UNBOUNDED, saturating_add

__all__ = [
    'PageSizePolicy',
    'SingleSourceBundleProvider',
    'IncludeResolver',
    'NoopIncludeResolver',
    'ReferenceIncludeResolver',
    'MergedBundleProvider',
    'Include',
    'SearchParam',
    'SearchSpecification',
    'SortSpec',
    'Token',
    'EmptyBundleProvider',
    'ResultProvider',
    'SearchQuery',
    'ResourceStringTranslator',
    'ToFhirTranslator',
    'MAX_RESULT_COUNT',
    'UNBOUNDED',
    'saturating_add'
]
