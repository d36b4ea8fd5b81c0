"""
Unit tests for SearchQuery provider selection.
"""

import pytest

from fhir_facade.search.base import PageSizePolicy
from fhir_facade.search.bundle_provider import SingleSourceBundleProvider
from fhir_facade.search.merged_provider import MergedBundleProvider
from fhir_facade.search.params import (
    CATEGORY_SEARCH_HANDLER,
    CONDITION_CATEGORY_CODE_CONDITION,
    CONDITION_CATEGORY_CODE_DIAGNOSIS,
    CONDITION_CATEGORY_SYSTEM_URI,
    PATIENT_REFERENCE_SEARCH_HANDLER,
    SearchParam,
    SearchSpecification,
    Token,
    iter_tokens,
)
from fhir_facade.search.provider import EmptyBundleProvider
from fhir_facade.search.query import SearchQuery

CONDITION = Token(CONDITION_CATEGORY_CODE_CONDITION, CONDITION_CATEGORY_SYSTEM_URI)
DIAGNOSIS = Token(CONDITION_CATEGORY_CODE_DIAGNOSIS, CONDITION_CATEGORY_SYSTEM_URI)


@pytest.fixture
def search_query():
    return SearchQuery(page_size_policy=PageSizePolicy(config={}, default_page_size=10, maximum_page_size=100))


def category_codes(spec):
    return [token.code for token in iter_tokens(spec.get_parameters(CATEGORY_SEARCH_HANDLER))]


class TestProviderSelection:

    def test_without_category_returns_single_provider_over_same_spec(self, search_query, fake_dao_factory,
                                                                     identity_translator):
        spec = SearchSpecification().add_parameter(PATIENT_REFERENCE_SEARCH_HANDLER, ["Patient/1"])

        provider = search_query.get_results(spec, fake_dao_factory([]), identity_translator)

        assert isinstance(provider, SingleSourceBundleProvider)
        assert provider.search_spec is spec

    def test_both_categories_return_merged_provider(self, search_query, fake_dao_factory, identity_translator):
        spec = SearchSpecification().add_parameter(CATEGORY_SEARCH_HANDLER, [CONDITION, DIAGNOSIS])

        provider = search_query.get_results(spec, fake_dao_factory([]), identity_translator)

        assert isinstance(provider, MergedBundleProvider)
        assert category_codes(provider.first.search_spec) == [CONDITION_CATEGORY_CODE_CONDITION]
        assert category_codes(provider.second.search_spec) == [CONDITION_CATEGORY_CODE_DIAGNOSIS]

    def test_categories_in_separate_entries_also_merge(self, search_query, fake_dao_factory, identity_translator):
        spec = (SearchSpecification()
                .add_parameter(CATEGORY_SEARCH_HANDLER, [DIAGNOSIS])
                .add_parameter(CATEGORY_SEARCH_HANDLER, [CONDITION]))

        provider = search_query.get_results(spec, fake_dao_factory([]), identity_translator)

        assert isinstance(provider, MergedBundleProvider)

    def test_condition_category_only_returns_single_provider(self, search_query, fake_dao_factory,
                                                            identity_translator):
        spec = SearchSpecification().add_parameter(CATEGORY_SEARCH_HANDLER, [CONDITION])

        provider = search_query.get_results(spec, fake_dao_factory([]), identity_translator)

        assert isinstance(provider, SingleSourceBundleProvider)
        assert category_codes(provider.search_spec) == [CONDITION_CATEGORY_CODE_CONDITION]

    def test_diagnosis_category_only_uses_second_dao(self, search_query, fake_dao_factory, identity_translator):
        first_dao, second_dao = fake_dao_factory([]), fake_dao_factory([])
        spec = SearchSpecification().add_parameter(CATEGORY_SEARCH_HANDLER, [DIAGNOSIS])

        provider = search_query.get_results(spec, first_dao, identity_translator, second_dao=second_dao)

        assert isinstance(provider, SingleSourceBundleProvider)
        assert provider.dao is second_dao

    def test_unmatched_category_returns_empty_provider(self, search_query, fake_dao_factory, identity_translator):
        spec = SearchSpecification().add_parameter(CATEGORY_SEARCH_HANDLER, [])

        provider = search_query.get_results(spec, fake_dao_factory([]), identity_translator)

        assert isinstance(provider, EmptyBundleProvider)
        assert provider.get_resources(0, 1) == []
        assert provider.size() == 0
        assert provider.preferred_page_size() == 10

    def test_narrowing_keeps_other_parameters_and_leaves_input_untouched(self, search_query, fake_dao_factory,
                                                                           identity_translator):
        spec = (SearchSpecification()
                .add_parameter(PATIENT_REFERENCE_SEARCH_HANDLER, ["Patient/1"])
                .add_parameter(CATEGORY_SEARCH_HANDLER, [CONDITION, DIAGNOSIS]))

        provider = search_query.get_results(spec, fake_dao_factory([]), identity_translator)

        narrowed = provider.first.search_spec
        assert narrowed.handler_keys() == [PATIENT_REFERENCE_SEARCH_HANDLER, CATEGORY_SEARCH_HANDLER]
        assert category_codes(spec) == [CONDITION_CATEGORY_CODE_CONDITION, CONDITION_CATEGORY_CODE_DIAGNOSIS]


class TestShouldSearchExplicitlyFor:

    def test_true_for_unconstrained_parameter(self):
        assert SearchQuery.should_search_explicitly_for(None, CONDITION_CATEGORY_CODE_CONDITION)

    def test_true_when_code_matches(self):
        values = [SearchParam(value=[CONDITION])]

        assert SearchQuery.should_search_explicitly_for(values, CONDITION_CATEGORY_CODE_CONDITION)

    def test_false_when_code_differs(self):
        values = [SearchParam(value=[DIAGNOSIS])]

        assert not SearchQuery.should_search_explicitly_for(values, CONDITION_CATEGORY_CODE_CONDITION)

    def test_token_without_system_matches(self):
        values = [SearchParam(value=[CONDITION_CATEGORY_CODE_CONDITION])]

        assert SearchQuery.should_search_explicitly_for(values, CONDITION_CATEGORY_CODE_CONDITION)

    def test_token_from_other_system_does_not_match(self):
        values = [SearchParam(value=[Token(CONDITION_CATEGORY_CODE_CONDITION, "http://example.org/other")])]

        assert not SearchQuery.should_search_explicitly_for(values, CONDITION_CATEGORY_CODE_CONDITION)


def test_merged_search_end_to_end(search_query, fake_dao_factory, identity_translator, resource_factory):
    conditions = fake_dao_factory(resource_factory(3, "cond"))
    diagnoses = fake_dao_factory(resource_factory(2, "diag"))
    spec = SearchSpecification().add_parameter(CATEGORY_SEARCH_HANDLER, [CONDITION, DIAGNOSIS])

    provider = search_query.get_results(spec, conditions, identity_translator, second_dao=diagnoses)

    assert provider.size() == 5
    assert [r["id"] for r in provider.get_resources(0, 5)] == ["cond0", "cond1", "cond2", "diag0", "diag1"]
    assert [r["id"] for r in provider.get_resources(2, 4)] == ["cond2", "diag0"]
    assert provider.preferred_page_size() == 10


def test_unconstrained_search_merges_both_strategies(search_query, fake_dao_factory, identity_translator,
                                                     resource_factory):
    conditions = fake_dao_factory(resource_factory(3, "cond"))
    diagnoses = fake_dao_factory(resource_factory(2, "diag"))
    spec = SearchSpecification().add_parameter(PATIENT_REFERENCE_SEARCH_HANDLER, ["Patient/1"])

    provider = search_query.get_results(spec, conditions, identity_translator, second_dao=diagnoses)

    assert isinstance(provider, MergedBundleProvider)
    assert provider.size() == 5
    assert [r["id"] for r in provider.get_resources(0, 5)] == ["cond0", "cond1", "cond2", "diag0", "diag1"]
    assert category_codes(provider.first.search_spec) == [CONDITION_CATEGORY_CODE_CONDITION]
    assert category_codes(provider.second.search_spec) == [CONDITION_CATEGORY_CODE_DIAGNOSIS]
    assert not spec.has_parameter(CATEGORY_SEARCH_HANDLER)
