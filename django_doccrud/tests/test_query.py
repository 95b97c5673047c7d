"""
Tests for django_doccrud.query assembler and helpers.
"""

import logging

import pytest
from bson import ObjectId

from django_doccrud.descriptor import JoinRequest, ParamFilter, QueryDescriptor, QueryFilter, SortSpec
from django_doccrud.options import FieldPolicy, JoinOption, QueryOptions, RouteOptions
from django_doccrud.query import QueryAssembler, get_skip, get_sort, get_take
from django_doccrud.relations import PopulatePlan


class TestGetTake:
    def test_caller_limit(self):
        assert get_take(QueryDescriptor(limit=10), QueryOptions()) == 10

    def test_caller_limit_clamped_to_max(self):
        assert get_take(QueryDescriptor(limit=500), QueryOptions(max_limit=100)) == 100

    def test_route_default_limit(self):
        assert get_take(QueryDescriptor(), QueryOptions(limit=20)) == 20

    def test_route_default_clamped(self):
        assert get_take(QueryDescriptor(), QueryOptions(limit=50, max_limit=25)) == 25

    def test_max_limit_alone(self):
        assert get_take(QueryDescriptor(), QueryOptions(max_limit=30)) == 30

    def test_non_positive_caller_limit_ignored(self):
        assert get_take(QueryDescriptor(limit=0), QueryOptions(limit=15)) == 15
        assert get_take(QueryDescriptor(limit=-3), QueryOptions()) is None

    def test_unbounded(self):
        assert get_take(QueryDescriptor(), QueryOptions()) is None

    def test_settings_fallback(self, settings_override):
        settings_override(DEFAULT_LIMIT=40, MAX_LIMIT=30)

        assert get_take(QueryDescriptor(), QueryOptions()) == 30
        assert get_take(QueryDescriptor(limit=100), QueryOptions()) == 30

    def test_settings_max_limit_only(self, settings_override):
        settings_override(MAX_LIMIT=75)

        assert get_take(QueryDescriptor(), QueryOptions()) == 75


class TestGetSkip:
    def test_page(self):
        assert get_skip(QueryDescriptor(page=2), 10) == 10

    def test_first_page(self):
        assert get_skip(QueryDescriptor(page=1), 10) == 0

    def test_page_without_take_falls_back_to_offset(self):
        assert get_skip(QueryDescriptor(page=3, offset=7), None) == 7

    def test_offset(self):
        assert get_skip(QueryDescriptor(offset=5), 10) == 5

    def test_default_zero(self):
        assert get_skip(QueryDescriptor(), 10) == 0


class TestGetSort:
    def test_caller_sort_wins(self):
        descriptor = QueryDescriptor(sort=(SortSpec("title", "ASC"),))
        options = QueryOptions(sort=(SortSpec("created_at", "DESC"),))

        assert get_sort(descriptor, options) == (("title", 1),)

    def test_policy_default(self):
        options = QueryOptions(sort=(SortSpec("created_at", "desc"),))

        assert get_sort(QueryDescriptor(), options) == (("created_at", -1),)

    def test_natural_order(self):
        assert get_sort(QueryDescriptor(), QueryOptions()) == ()


class TestQueryAssembler:
    def test_collection_query(self, post_schema):
        descriptor = QueryDescriptor(
            filters=(QueryFilter("status", "$eq", "published"),),
            fields=("title", "secret"),
            sort=(SortSpec("title", "DESC"),),
            page=2,
            limit=10,
        )
        options = RouteOptions(query=QueryOptions(fields=FieldPolicy(exclude=("secret",))))

        query = QueryAssembler(post_schema).assemble(descriptor, options, many=True)

        assert query.filter == {"status": {"$eq": "published"}}
        assert query.projection == {"title": 1, "_id": 1}
        assert query.sort == (("title", -1),)
        assert query.skip == 10
        assert query.limit == 10
        assert query.many is True

    def test_single_entity_has_no_pagination(self, post_schema):
        descriptor = QueryDescriptor(sort=(SortSpec("title"),), page=3, limit=10)

        query = QueryAssembler(post_schema).assemble(descriptor, RouteOptions(), many=False)

        assert query.sort == ()
        assert query.skip is None
        assert query.limit is None
        assert query.many is False

    def test_params_identity_is_coerced(self, post_schema):
        oid = ObjectId()
        descriptor = QueryDescriptor(params_filter=(ParamFilter("_id", str(oid)),))

        query = QueryAssembler(post_schema).assemble(descriptor, RouteOptions(), many=False)

        assert query.filter == {"_id": oid}

    def test_population_plan_attached(self, post_schema):
        descriptor = QueryDescriptor(join=(JoinRequest("comments.author", select=("name",)),))
        options = RouteOptions(
            query=QueryOptions(join={"author": JoinOption(eager=True, exclude=("password",)), "comments": JoinOption()})
        )

        query = QueryAssembler(post_schema).assemble(descriptor, options)

        assert query.populate == (
            PopulatePlan("author", select={"password": 0}),
            PopulatePlan("comments", populate=PopulatePlan("author", select={"name": 1})),
        )

    def test_persist_fields_projected(self, post_schema):
        options = RouteOptions(query=QueryOptions(fields=FieldPolicy(allow=("title",)), persist=("status",)))

        query = QueryAssembler(post_schema).assemble(QueryDescriptor(), options)

        assert list(query.projection) == ["status", "title", "_id"]

    def test_logs_assembled_query(self, post_schema, caplog):
        with caplog.at_level(logging.DEBUG, logger="django_doccrud"):
            QueryAssembler(post_schema).assemble(QueryDescriptor(), RouteOptions())

        assert any("Assembled post query" in r.message for r in caplog.records)

    def test_audit_queries_log_at_info(self, post_schema, caplog, settings_override):
        settings_override(AUDIT_QUERIES=True)

        with caplog.at_level(logging.INFO, logger="django_doccrud"):
            QueryAssembler(post_schema).assemble(QueryDescriptor(), RouteOptions())

        assert [r.levelno for r in caplog.records] == [logging.INFO]

    def test_invalid_join_propagates(self, post_schema):
        from django_doccrud.exceptions import InvalidInput

        descriptor = QueryDescriptor(join=(JoinRequest("author.missingRelation"),))
        options = RouteOptions(query=QueryOptions(join={"author": JoinOption()}))

        with pytest.raises(InvalidInput) as exc:
            QueryAssembler(post_schema).assemble(descriptor, options)
        assert "missingRelation" in str(exc.value)

    def test_filter_on_excluded_field_rejected(self, post_schema):
        from django_doccrud.exceptions import InvalidInput

        descriptor = QueryDescriptor(filters=(QueryFilter("secret", "$starts", "hun"),))
        options = RouteOptions(query=QueryOptions(fields=FieldPolicy(exclude=("secret",))))

        with pytest.raises(InvalidInput) as exc:
            QueryAssembler(post_schema).assemble(descriptor, options)
        assert "secret" in str(exc.value)

    def test_filter_on_expression_operator_rejected(self, post_schema):
        from django_doccrud.exceptions import InvalidInput

        descriptor = QueryDescriptor(filters=(QueryFilter("$expr", "$eq", ["$secret", "hunter2"]),))

        with pytest.raises(InvalidInput):
            QueryAssembler(post_schema).assemble(descriptor, RouteOptions())

    def test_persisted_and_identity_fields_filterable(self, post_schema):
        oid = ObjectId()
        descriptor = QueryDescriptor(
            filters=(QueryFilter("status", "$eq", "draft"), QueryFilter("_id", "$eq", oid)),
        )
        options = RouteOptions(query=QueryOptions(fields=FieldPolicy(allow=("title",)), persist=("status",)))

        query = QueryAssembler(post_schema).assemble(descriptor, options)

        assert query.filter == {"status": {"$eq": "draft"}, "_id": {"$eq": oid}}

    def test_static_filter_is_trusted(self, post_schema):
        options = RouteOptions(
            query=QueryOptions(filter={"secret": {"$exists": True}}, fields=FieldPolicy(exclude=("secret",)))
        )

        query = QueryAssembler(post_schema).assemble(QueryDescriptor(), options)

        assert query.filter == {"secret": {"$exists": True}}
