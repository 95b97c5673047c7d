"""
Tests for django_doccrud.filters module.
"""

import re

import pytest
from bson import ObjectId


class TestBuildCondition:
    """Tests for build_condition function."""

    def test_comparison_passthrough(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$eq", "draft") == {"$eq": "draft"}
        assert build_condition("$gte", 18) == {"$gte": 18}
        assert build_condition("$ne", None) == {"$ne": None}

    def test_in_wraps_scalar(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$in", "a") == {"$in": ["a"]}
        assert build_condition("$in", ["a", "b"]) == {"$in": ["a", "b"]}

    def test_notin_maps_to_nin(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$notin", ["x"]) == {"$nin": ["x"]}

    def test_null_checks(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$isnull", None) == {"$eq": None}
        assert build_condition("$notnull", None) == {"$ne": None}

    def test_between(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$between", [1, 5]) == {"$gte": 1, "$lte": 5}

    def test_between_requires_two_values(self):
        from django_doccrud.exceptions import InvalidInput
        from django_doccrud.filters import build_condition

        with pytest.raises(InvalidInput):
            build_condition("$between", [1])

    def test_starts_is_anchored_and_escaped(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$starts", "a.b") == {"$regex": r"^a\.b"}

    def test_ends(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$ends", "son") == {"$regex": "son$"}

    def test_cont_escapes_regex_syntax(self):
        from django_doccrud.filters import build_condition

        condition = build_condition("$cont", ".*")
        assert condition == {"$regex": re.escape(".*")}

    def test_case_insensitive_variant(self):
        from django_doccrud.filters import build_condition

        assert build_condition("$contL", "abc") == {"$regex": "abc", "$options": "i"}
        assert build_condition("$eqL", "Abc") == {"$regex": "^Abc$", "$options": "i"}

    def test_excl_is_negated_regex(self):
        from django_doccrud.filters import build_condition

        condition = build_condition("$excl", "spam")
        assert set(condition) == {"$not"}
        assert condition["$not"].pattern == "spam"

    def test_unknown_operator_rejected(self):
        from django_doccrud.exceptions import InvalidInput
        from django_doccrud.filters import build_condition

        with pytest.raises(InvalidInput) as exc:
            build_condition("$where", "sleep(1000)")
        assert "$where" in str(exc.value)


class TestQueryFilterToSearch:
    """Tests for query_filter_to_search function."""

    def test_entries_become_conditions(self):
        from django_doccrud.descriptor import QueryFilter
        from django_doccrud.filters import query_filter_to_search

        search = query_filter_to_search([QueryFilter("status", "$eq", "draft")])
        assert search == {"status": {"$eq": "draft"}}

    def test_same_field_combines_operators(self):
        from django_doccrud.descriptor import QueryFilter
        from django_doccrud.filters import query_filter_to_search

        search = query_filter_to_search([QueryFilter("age", "$gt", 18), QueryFilter("age", "$lt", 65)])
        assert search == {"age": {"$gt": 18, "$lt": 65}}

    def test_mapping_passes_through(self):
        from django_doccrud.filters import query_filter_to_search

        mapping = {"deleted": {"$ne": True}}
        assert query_filter_to_search(mapping) is mapping

    def test_malformed_input_is_empty(self):
        from django_doccrud.filters import query_filter_to_search

        assert query_filter_to_search(None) == {}
        assert query_filter_to_search("status=draft") == {}

    def test_entries_without_field_are_skipped(self):
        from django_doccrud.descriptor import QueryFilter
        from django_doccrud.filters import query_filter_to_search

        assert query_filter_to_search([QueryFilter("", "$eq", 1), object()]) == {}


class TestMergeFilters:
    """Tests for merge_filters precedence."""

    def test_params_filter_beats_static_filter(self):
        from django_doccrud.descriptor import ParamFilter, QueryDescriptor, QueryFilter
        from django_doccrud.filters import merge_filters
        from django_doccrud.options import QueryOptions

        descriptor = QueryDescriptor(params_filter=(ParamFilter("a", 2),))
        options = QueryOptions(filter=(QueryFilter("a", "$eq", 1),))

        assert merge_filters(descriptor, options) == {"a": 2}

    def test_static_filter_beats_caller_filter(self):
        from django_doccrud.descriptor import QueryDescriptor, QueryFilter
        from django_doccrud.filters import merge_filters
        from django_doccrud.options import QueryOptions

        descriptor = QueryDescriptor(filters=(QueryFilter("owner", "$eq", "mallory"),))
        options = QueryOptions(filter={"owner": "alice"})

        assert merge_filters(descriptor, options) == {"owner": "alice"}

    def test_params_filter_beats_caller_filter(self):
        from django_doccrud.descriptor import ParamFilter, QueryDescriptor, QueryFilter
        from django_doccrud.filters import merge_filters
        from django_doccrud.options import QueryOptions

        descriptor = QueryDescriptor(
            filters=(QueryFilter("blog", "$ne", "b1"),),
            params_filter=(ParamFilter("blog", "b1"),),
        )

        assert merge_filters(descriptor, QueryOptions()) == {"blog": "b1"}

    def test_distinct_fields_are_combined(self):
        from django_doccrud.descriptor import ParamFilter, QueryDescriptor, QueryFilter
        from django_doccrud.filters import merge_filters
        from django_doccrud.options import QueryOptions

        descriptor = QueryDescriptor(
            filters=(QueryFilter("status", "$in", ["a", "b"]),),
            params_filter=(ParamFilter("blog", "b1"),),
        )
        options = QueryOptions(filter={"deleted": {"$ne": True}})

        assert merge_filters(descriptor, options) == {
            "status": {"$in": ["a", "b"]},
            "deleted": {"$ne": True},
            "blog": "b1",
        }


class TestOverlay:
    def test_later_layers_win(self):
        from django_doccrud.filters import overlay

        assert overlay({"a": 1, "b": 2}, {"a": 9}, {"a": 5}, {}) == {"a": 5, "b": 2}

    def test_none_layers_ignored(self):
        from django_doccrud.filters import overlay

        assert overlay(None, {"a": 1}, None) == {"a": 1}


class TestCoerceIdentity:
    def test_hex_string_becomes_object_id(self):
        from django_doccrud.filters import coerce_identity

        oid = ObjectId()
        where = {"_id": str(oid), "blog": "x"}
        result = coerce_identity(where, ["_id"])

        assert result == {"_id": oid, "blog": "x"}
        assert where["_id"] == str(oid)

    def test_non_hex_string_untouched(self):
        from django_doccrud.filters import coerce_identity

        assert coerce_identity({"_id": "slug-1"}, ["_id"]) == {"_id": "slug-1"}

    def test_disabled_by_setting(self, settings_override):
        from django_doccrud.filters import coerce_identity

        settings_override(COERCE_OBJECT_ID=False)
        oid = str(ObjectId())
        assert coerce_identity({"_id": oid}, ["_id"]) == {"_id": oid}


class TestCheckFilterFields:
    """Tests for check_filter_fields function."""

    def test_allowed_fields_pass(self):
        from django_doccrud.descriptor import QueryFilter
        from django_doccrud.filters import check_filter_fields

        filters = [QueryFilter("status", "$eq", "x"), QueryFilter("meta.views", "$gt", 3)]

        check_filter_fields(filters, ["status", "meta"])

    @pytest.mark.parametrize("field", ["$expr", "$where", "meta.$size", "$or"])
    def test_operator_fields_denied(self, field):
        from django_doccrud.descriptor import QueryFilter
        from django_doccrud.exceptions import InvalidInput
        from django_doccrud.filters import check_filter_fields

        with pytest.raises(InvalidInput) as exc:
            check_filter_fields([QueryFilter(field, "$eq", ["$secret", "hunter2"])], ["status", "meta", field])
        assert field in str(exc.value)

    def test_field_outside_allowed_denied(self):
        from django_doccrud.descriptor import QueryFilter
        from django_doccrud.exceptions import InvalidInput
        from django_doccrud.filters import check_filter_fields

        with pytest.raises(InvalidInput) as exc:
            check_filter_fields([QueryFilter("secret", "$starts", "hun")], ["_id", "title"])
        assert exc.value.message == "Filter denied: 'secret' not allowed for filtering"

    def test_entries_without_field_ignored(self):
        from django_doccrud.descriptor import QueryFilter
        from django_doccrud.filters import check_filter_fields

        check_filter_fields([QueryFilter("", "$eq", 1)], [])
