"""
Django-DocCrud Query Assembler

Composes the merged filter, projection, population plan, sort and
pagination bounds into one executable query description.

Provides:
- AssembledQuery, the immutable result
- QueryAssembler, bound to one entity schema
- get_take / get_skip / get_sort helpers
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django_doccrud.conf import doccrud_settings
from django_doccrud.fields import build_projection, get_allowed_columns, resolve_projection
from django_doccrud.filters import check_filter_fields, coerce_identity, merge_filters
from django_doccrud.relations import RelationResolver


logger = logging.getLogger("django_doccrud")

SORT_DIRECTIONS = {"ASC": 1, "DESC": -1}


@dataclass(frozen=True)
class AssembledQuery:
    """A composed, ready-to-execute query."""

    filter: dict
    projection: Optional[dict]
    populate: tuple = ()
    sort: tuple = ()
    skip: Optional[int] = None
    limit: Optional[int] = None
    many: bool = True

    def to_dict(self):
        return {
            "filter": self.filter,
            "projection": self.projection,
            "populate": [p.to_dict() for p in self.populate],
            "sort": list(self.sort),
            "skip": self.skip,
            "limit": self.limit,
        }


def _positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _clamp(value, ceiling):
    if _positive_int(ceiling):
        return min(value, ceiling)
    return value


def get_take(descriptor, query_options):
    """
    Resolve the page size for a collection query.

    Resolution order:
    1. Caller limit, clamped to the route max_limit
    2. Route default limit, clamped to the route max_limit
    3. Route max_limit
    4. DEFAULT_LIMIT setting, clamped to the MAX_LIMIT setting
    5. MAX_LIMIT setting
    6. None (unbounded)

    Args:
        descriptor: QueryDescriptor
        query_options: QueryOptions of the route

    Returns:
        Positive int or None

    Examples:
        >>> get_take(QueryDescriptor(limit=500), QueryOptions(max_limit=100))
        100
        >>> get_take(QueryDescriptor(), QueryOptions(limit=20))
        20
    """
    max_limit = query_options.max_limit

    if _positive_int(descriptor.limit):
        return _clamp(descriptor.limit, max_limit or doccrud_settings.MAX_LIMIT)
    if _positive_int(query_options.limit):
        return _clamp(query_options.limit, max_limit or doccrud_settings.MAX_LIMIT)
    if _positive_int(max_limit):
        return max_limit

    default_limit = doccrud_settings.DEFAULT_LIMIT
    if _positive_int(default_limit):
        return _clamp(default_limit, doccrud_settings.MAX_LIMIT)
    if _positive_int(doccrud_settings.MAX_LIMIT):
        return doccrud_settings.MAX_LIMIT
    return None


def get_skip(descriptor, take):
    """
    Resolve how many documents to skip.

    Examples:
        >>> get_skip(QueryDescriptor(page=3), 10)
        20
        >>> get_skip(QueryDescriptor(offset=5), None)
        5
        >>> get_skip(QueryDescriptor(), 10)
        0
    """
    if _positive_int(descriptor.page) and _positive_int(take):
        return take * (descriptor.page - 1)
    if _positive_int(descriptor.offset):
        return descriptor.offset
    return 0


def map_sort(sort):
    """
    Convert SortSpecs to MongoDB sort pairs.

    Example:
        >>> map_sort([SortSpec("created_at", "DESC"), SortSpec("title", "asc")])
        (('created_at', -1), ('title', 1))
    """
    return tuple((s.field, SORT_DIRECTIONS.get(s.order.upper(), 1)) for s in sort)


def get_sort(descriptor, query_options):
    """Caller sort if present, else the route default, else natural order."""
    if descriptor.sort:
        return map_sort(descriptor.sort)
    if query_options.sort:
        return map_sort(query_options.sort)
    return ()


class QueryAssembler:
    """
    Builds AssembledQuery objects for one entity.

    Example:
        assembler = QueryAssembler(post_schema)
        query = assembler.assemble(descriptor, route_options, many=True)
    """

    def __init__(self, schema, relation_resolver=None):
        self.schema = schema
        self.relations = relation_resolver or RelationResolver(schema)

    def get_select(self, descriptor, query_options):
        """Projection list for the entity (see resolve_projection)."""
        return resolve_projection(
            self.schema.field_names(),
            query_options.fields,
            requested=descriptor.fields,
            persist=query_options.persist,
            primary_keys=self.schema.primary_keys,
        )

    def get_filterable(self, query_options):
        """Fields a caller may filter on: eligible columns, persisted fields and primary keys."""
        columns = get_allowed_columns(self.schema.field_names(), query_options.fields)
        return [*columns, *query_options.persist, *self.schema.primary_keys]

    def get_search(self, descriptor, query_options):
        """
        Merged search filter with identity values coerced.

        Caller filters are checked against get_filterable(); the static route
        filter and params filter are trusted.
        """
        check_filter_fields(descriptor.filters, self.get_filterable(query_options))
        search = merge_filters(descriptor, query_options)
        return coerce_identity(search, self.schema.primary_keys)

    def assemble(self, descriptor, options, many=True):
        """
        Assemble a query for a request.

        Args:
            descriptor: QueryDescriptor
            options: RouteOptions
            many: True for a collection query, False for a single entity

        Returns:
            AssembledQuery; single-entity queries carry no sort, skip or limit

        Raises:
            InvalidInput: On unknown filter operators, filters on fields the
                caller may not filter on, or invalid join paths
        """
        query_options = options.query

        projection = build_projection(self.get_select(descriptor, query_options))
        search = self.get_search(descriptor, query_options)
        populate = self.relations.resolve_joins(descriptor.join, query_options.join)

        if many:
            take = get_take(descriptor, query_options)
            query = AssembledQuery(
                filter=search,
                projection=projection,
                populate=populate,
                sort=get_sort(descriptor, query_options),
                skip=get_skip(descriptor, take),
                limit=take,
                many=True,
            )
        else:
            query = AssembledQuery(filter=search, projection=projection, populate=populate, many=False)

        if doccrud_settings.AUDIT_QUERIES:
            logger.info(f"Assembled {self.schema.name} query: {query.to_dict()}")
        else:
            logger.debug(f"Assembled {self.schema.name} query: {query.to_dict()}")

        return query
