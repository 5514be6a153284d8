"""
Tests for criteria classification, options and query normalization.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from footprint.runtime.criteria import (
    ByFilter,
    ById,
    QueryOptions,
    classify,
    criteria_fields,
    normalize,
    resolve_options,
)


class TestClassify:
    """Test loose criteria classification."""

    @pytest.mark.parametrize("value", [42, "abc", 0, None, [1, 2]])
    def test_non_mappings_are_ids(self, value):
        assert classify(value) == ById(value)

    def test_mapping_is_filter(self):
        assert classify({"status": "open"}) == ByFilter({"status": "open"})

    def test_tagged_values_pass_through(self):
        by_id = ById(5)
        by_filter = ByFilter({"a": 1})
        assert classify(by_id) is by_id
        assert classify(by_filter) is by_filter

    def test_criteria_fields(self):
        assert criteria_fields(None) == {}
        assert criteria_fields({"a": 1}) == {"a": 1}
        assert criteria_fields(7) == {"_id": 7}


class TestQueryOptions:
    def test_defaults(self):
        options = QueryOptions()
        assert options.default_limit is None
        assert options.find_one is False

    def test_camel_case_aliases(self):
        options = QueryOptions.model_validate({"defaultLimit": 5, "findOne": True})
        assert options.default_limit == 5
        assert options.find_one is True

    def test_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            QueryOptions(default_limit=0)

    def test_caller_options_override_defaults(self):
        defaults = QueryOptions(default_limit=100)
        assert resolve_options(None, defaults).default_limit == 100
        assert resolve_options({"default_limit": 3}, defaults).default_limit == 3

    def test_unset_caller_options_keep_defaults(self):
        defaults = QueryOptions(default_limit=100)
        resolved = resolve_options({"find_one": True}, defaults)
        assert resolved.default_limit == 100
        assert resolved.find_one is True


class TestNormalize:
    """Test criteria + options -> NormalizedQuery."""

    def test_scalar_is_single_record_by_key(self):
        query = normalize(10)
        assert query.single is True
        assert query.by_key is True
        assert query.filter == {"_id": 10}

    def test_filter_is_multi_record(self):
        query = normalize({"status": "open"})
        assert query.single is False
        assert query.filter == {"status": "open"}
        assert query.limit is None

    def test_filter_gets_default_limit(self):
        query = normalize({"status": "open"}, QueryOptions(default_limit=2))
        assert query.limit == 2

    def test_scalar_ignores_default_limit(self):
        query = normalize(10, QueryOptions(default_limit=2))
        assert query.single is True
        assert query.limit is None

    def test_find_one_forces_single_record(self):
        query = normalize({"_id": 10}, QueryOptions(find_one=True))
        assert query.single is True
        assert query.filter == normalize(10).filter
