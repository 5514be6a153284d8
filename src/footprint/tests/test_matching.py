"""
Tests for document filter matching and update operators.
"""

from __future__ import annotations

import pytest

from footprint.runtime.matching import apply_update, matches, normalize_update, project

# =============================================================================
# Filter Matching
# =============================================================================


class TestMatches:
    """Test filter evaluation against documents."""

    def test_empty_filter_matches_everything(self):
        assert matches({"_id": 1}, {})

    def test_equality(self):
        doc = {"_id": 1, "status": "open", "value": 10}
        assert matches(doc, {"status": "open"})
        assert matches(doc, {"status": "open", "value": 10})
        assert not matches(doc, {"status": "closed"})

    def test_missing_field_equals_none(self):
        assert matches({"_id": 1}, {"owner": None})
        assert not matches({"_id": 1}, {"owner": "ada"})

    def test_comparison_operators(self):
        doc = {"_id": 1, "value": 10}
        assert matches(doc, {"value": {"$gt": 5}})
        assert matches(doc, {"value": {"$gte": 10, "$lte": 10}})
        assert not matches(doc, {"value": {"$lt": 10}})
        assert matches(doc, {"value": {"$ne": 11}})

    def test_comparison_on_missing_field_is_false(self):
        assert not matches({"_id": 1}, {"value": {"$gt": 0}})
        assert not matches({"_id": 1}, {"value": {"$lt": 0}})

    def test_comparison_across_types_is_false(self):
        assert not matches({"_id": 1, "value": "ten"}, {"value": {"$gt": 5}})

    def test_in_and_nin(self):
        doc = {"_id": 20}
        assert matches(doc, {"_id": {"$in": [10, 20, 30]}})
        assert not matches(doc, {"_id": {"$in": []}})
        assert matches(doc, {"_id": {"$nin": [10, 30]}})
        assert not matches(doc, {"_id": {"$nin": [20]}})

    def test_in_requires_a_list(self):
        with pytest.raises(ValueError, match=r"\$in expects a list"):
            matches({"_id": 1}, {"_id": {"$in": "abc"}})

    def test_exists(self):
        assert matches({"_id": 1, "owner": None}, {"owner": {"$exists": True}})
        assert not matches({"_id": 1}, {"owner": {"$exists": True}})
        assert matches({"_id": 1}, {"owner": {"$exists": False}})

    def test_unknown_operator(self):
        with pytest.raises(ValueError, match="Unsupported filter operator"):
            matches({"_id": 1}, {"value": {"$regex": "x"}})

    def test_nested_mapping_without_operators_is_equality(self):
        doc = {"_id": 1, "meta": {"a": 1}}
        assert matches(doc, {"meta": {"a": 1}})
        assert not matches(doc, {"meta": {"a": 2}})


# =============================================================================
# Projection
# =============================================================================


class TestProject:
    def test_keeps_primary_key(self):
        assert project({"_id": 1, "a": 1, "b": 2}, ["a"]) == {"_id": 1, "a": 1}

    def test_none_copies_everything(self):
        doc = {"_id": 1, "tags": [1]}
        copied = project(doc, None)
        assert copied == doc
        copied["tags"].append(2)
        assert doc["tags"] == [1]


# =============================================================================
# Update Operators
# =============================================================================


class TestApplyUpdate:
    """Test update documents."""

    def test_plain_mapping_is_set(self):
        assert normalize_update({"status": "x"}) == {"$set": {"status": "x"}}
        assert apply_update({"_id": 1, "status": "a"}, {"status": "x"}) == {
            "_id": 1,
            "status": "x",
        }

    def test_original_document_unchanged(self):
        doc = {"_id": 1, "tags": [10]}
        apply_update(doc, {"$push": {"tags": 20}})
        assert doc == {"_id": 1, "tags": [10]}

    def test_push_appends_in_order(self):
        doc = apply_update({"_id": 1, "tags": [10, 20]}, {"$push": {"tags": 30}})
        assert doc["tags"] == [10, 20, 30]

    def test_push_creates_missing_array(self):
        assert apply_update({"_id": 1}, {"$push": {"tags": 10}})["tags"] == [10]
        assert apply_update({"_id": 1, "tags": None}, {"$push": {"tags": 10}})["tags"] == [10]

    def test_push_to_scalar_rejected(self):
        with pytest.raises(ValueError, match="non-array"):
            apply_update({"_id": 1, "tags": 5}, {"$push": {"tags": 10}})

    def test_pull_all_keeps_order_of_remaining(self):
        doc = apply_update({"_id": 1, "tags": [10, 20, 30, 20]}, {"$pullAll": {"tags": [20]}})
        assert doc["tags"] == [10, 30]

    def test_unset(self):
        assert apply_update({"_id": 1, "a": 1}, {"$unset": {"a": ""}}) == {"_id": 1}

    def test_primary_key_cannot_change(self):
        with pytest.raises(ValueError, match="_id"):
            apply_update({"_id": 1}, {"_id": 2})
        # Setting the same value is a no-op
        assert apply_update({"_id": 1, "a": 1}, {"_id": 1, "a": 2}) == {"_id": 1, "a": 2}

    def test_mixed_operators_and_fields_rejected(self):
        with pytest.raises(ValueError, match="mix"):
            apply_update({"_id": 1}, {"$set": {"a": 1}, "b": 2})

    def test_unknown_update_operator(self):
        with pytest.raises(ValueError, match="Unsupported update operator"):
            apply_update({"_id": 1}, {"$inc": {"a": 1}})
