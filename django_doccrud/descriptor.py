"""
Django-DocCrud Query Descriptor

The canonical, transport-agnostic representation of a parsed request.
The transport layer builds a QueryDescriptor (directly or through
QueryDescriptor.from_dict) and hands it to the engine; the engine never
mutates it.

Example:
    descriptor = QueryDescriptor.from_dict({
        'fields': 'title, author',
        'filters': [{'field': 'status', 'operator': '$eq', 'value': 'published'}],
        'params_filter': [{'field': 'blog', 'value': '65f0c0ffee0000000000beef'}],
        'join': [{'field': 'author', 'select': ['name']}],
        'sort': [{'field': 'created_at', 'order': 'DESC'}],
        'page': 2,
        'limit': 10,
    })
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional


@dataclass(frozen=True)
class QueryFilter:
    """A caller or static filter entry: ``{field: {operator: value}}``."""

    field: str
    operator: str = "$eq"
    value: Any = None


@dataclass(frozen=True)
class ParamFilter:
    """A route-derived identity constraint (e.g. parent resource id)."""

    field: str
    value: Any = None


@dataclass(frozen=True)
class JoinRequest:
    """A caller-requested relation, with an optional sub-field selection."""

    field: str
    select: Optional[tuple] = None


@dataclass(frozen=True)
class SortSpec:
    field: str
    order: str = "ASC"


@dataclass(frozen=True)
class QueryDescriptor:
    """Per-request query descriptor. Immutable once built."""

    filters: tuple = ()
    params_filter: tuple = ()
    auth_persist: dict = field(default_factory=dict)
    join: tuple = ()
    sort: tuple = ()
    fields: tuple = ()
    page: Optional[int] = None
    offset: Optional[int] = None
    limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        """
        Build a descriptor from a plain mapping.

        Accepts snake_case keys as well as the camelCase ``paramsFilter`` and
        ``authPersist`` spellings. Missing keys fall back to empty values.

        Args:
            data: Mapping produced by the transport layer

        Returns:
            QueryDescriptor
        """
        data = data or {}
        return cls(
            filters=tuple(parse_filters(data.get("filters", data.get("filter")))),
            params_filter=tuple(parse_param_filters(data.get("params_filter", data.get("paramsFilter")))),
            auth_persist=dict(data.get("auth_persist", data.get("authPersist")) or {}),
            join=tuple(parse_joins(data.get("join"))),
            sort=tuple(parse_sort(data.get("sort"))),
            fields=tuple(parse_fields(data.get("fields"))),
            page=data.get("page"),
            offset=data.get("offset"),
            limit=data.get("limit"),
        )

    def with_params_values(self, values):
        """
        Return a copy whose params-filter values are taken from ``values``.

        Used to re-fetch a document after an update, where the identity
        fields may have been rewritten.

        Example:
            >>> d = QueryDescriptor(params_filter=(ParamFilter("_id", "a"),))
            >>> d.with_params_values({"_id": "b"}).params_filter
            (ParamFilter(field='_id', value='b'),)
        """
        params = tuple(ParamFilter(p.field, values.get(p.field)) for p in self.params_filter)
        return replace(self, params_filter=params)


def parse_fields(fields):
    """
    Parse requested fields into a list of field names.

    Args:
        fields: Comma-separated string, sequence of names, or None

    Returns:
        List of field names (empty means "no restriction")

    Examples:
        >>> parse_fields("title, author")
        ['title', 'author']
        >>> parse_fields(["title"])
        ['title']
        >>> parse_fields(None)
        []
    """
    if not fields:
        return []

    if isinstance(fields, str):
        fields = fields.split(",")

    return [f.strip() for f in fields if f and f.strip()]


def parse_filters(filters):
    """Parse filter entries (mappings or QueryFilter instances) into QueryFilters."""
    result = []
    for item in filters or []:
        if isinstance(item, QueryFilter):
            result.append(item)
        elif isinstance(item, dict) and item.get("field"):
            result.append(QueryFilter(item["field"], item.get("operator", "$eq"), item.get("value")))
    return result


def parse_param_filters(filters):
    """Parse route params into ParamFilters. A mapping is read as field -> value."""
    if isinstance(filters, dict):
        return [ParamFilter(k, v) for k, v in filters.items()]

    result = []
    for item in filters or []:
        if isinstance(item, ParamFilter):
            result.append(item)
        elif isinstance(item, dict) and item.get("field"):
            result.append(ParamFilter(item["field"], item.get("value")))
    return result


def parse_joins(joins):
    """
    Parse join requests.

    Examples:
        >>> parse_joins(["author"])
        [JoinRequest(field='author', select=None)]
        >>> parse_joins([{"field": "author", "select": "name, email"}])
        [JoinRequest(field='author', select=('name', 'email'))]
    """
    result = []
    for item in joins or []:
        if isinstance(item, JoinRequest):
            result.append(item)
        elif isinstance(item, str) and item:
            result.append(JoinRequest(item))
        elif isinstance(item, dict) and item.get("field"):
            select = item.get("select")
            result.append(JoinRequest(item["field"], tuple(parse_fields(select)) if select else None))
    return result


def parse_sort(sort):
    """
    Parse sort entries. Strings use the ``field,ORDER`` form.

    Examples:
        >>> parse_sort(["created_at,DESC"])
        [SortSpec(field='created_at', order='DESC')]
        >>> parse_sort([{"field": "title"}])
        [SortSpec(field='title', order='ASC')]
    """
    result = []
    for item in sort or []:
        if isinstance(item, SortSpec):
            result.append(item)
        elif isinstance(item, str) and item:
            name, _, order = item.partition(",")
            result.append(SortSpec(name.strip(), (order.strip() or "ASC").upper()))
        elif isinstance(item, dict) and item.get("field"):
            result.append(SortSpec(item["field"], str(item.get("order") or "ASC").upper()))
    return result
