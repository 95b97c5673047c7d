"""
Django-DocCrud Route Options

Administrator-configured, per-endpoint policy. Built once at startup and
shared read-only between requests.

Example:
    options = RouteOptions.from_dict({
        'query': {
            'filter': {'deleted': {'$ne': True}},
            'join': {
                'author': {'eager': True, 'exclude': ['password']},
                'comments': {},
            },
            'sort': [{'field': 'created_at', 'order': 'DESC'}],
            'fields': {'exclude': ['internal_notes']},
            'persist': ['slug'],
            'limit': 20,
            'max_limit': 100,
        },
        'routes': {
            'update_one': {'allow_params_override': False, 'return_shallow': True},
            'delete_one': {'return_deleted': True},
        },
    })
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from django_doccrud.descriptor import parse_fields, parse_filters, parse_sort


@dataclass(frozen=True)
class FieldPolicy:
    """Allow-list / deny-list for projected fields. Empty means no restriction."""

    allow: tuple = ()
    exclude: tuple = ()


@dataclass(frozen=True)
class JoinOption:
    """Policy for a single relation."""

    eager: bool = False
    exclude: tuple = ()


@dataclass(frozen=True)
class QueryOptions:
    filter: Any = ()
    join: dict = field(default_factory=dict)
    sort: tuple = ()
    fields: FieldPolicy = field(default_factory=FieldPolicy)
    persist: tuple = ()
    limit: Optional[int] = None
    max_limit: Optional[int] = None


@dataclass(frozen=True)
class MutationRouteOptions:
    allow_params_override: bool = False
    return_shallow: bool = False


@dataclass(frozen=True)
class DeleteRouteOptions:
    return_deleted: bool = False


@dataclass(frozen=True)
class RoutesOptions:
    update_one: MutationRouteOptions = field(default_factory=MutationRouteOptions)
    replace_one: MutationRouteOptions = field(default_factory=MutationRouteOptions)
    delete_one: DeleteRouteOptions = field(default_factory=DeleteRouteOptions)


@dataclass(frozen=True)
class RouteOptions:
    query: QueryOptions = field(default_factory=QueryOptions)
    routes: RoutesOptions = field(default_factory=RoutesOptions)

    @classmethod
    def from_dict(cls, data):
        """
        Build route options from the nested admin configuration mapping.

        Both snake_case and camelCase keys are accepted for route flags
        (``allow_params_override`` / ``allowParamsOverride`` and so on).
        """
        data = data or {}
        return cls(
            query=_parse_query_options(data.get("query") or {}),
            routes=_parse_routes(data.get("routes") or {}),
        )


def _get(data, snake, camel, default=None):
    if snake in data:
        return data[snake]
    return data.get(camel, default)


def _parse_query_options(data):
    static_filter = data.get("filter") or ()
    if not isinstance(static_filter, dict):
        static_filter = tuple(parse_filters(static_filter))

    joins = {}
    for name, conf in (data.get("join") or {}).items():
        conf = conf or {}
        joins[name] = JoinOption(
            eager=bool(conf.get("eager", False)),
            exclude=tuple(parse_fields(conf.get("exclude"))),
        )

    field_conf = data.get("fields") or {}
    return QueryOptions(
        filter=static_filter,
        join=joins,
        sort=tuple(parse_sort(data.get("sort"))),
        fields=FieldPolicy(
            allow=tuple(parse_fields(field_conf.get("allow"))),
            exclude=tuple(parse_fields(field_conf.get("exclude"))),
        ),
        persist=tuple(parse_fields(data.get("persist"))),
        limit=data.get("limit"),
        max_limit=_get(data, "max_limit", "maxLimit"),
    )


def _parse_mutation_route(data):
    data = data or {}
    return MutationRouteOptions(
        allow_params_override=bool(_get(data, "allow_params_override", "allowParamsOverride", False)),
        return_shallow=bool(_get(data, "return_shallow", "returnShallow", False)),
    )


def _parse_routes(data):
    delete_conf = _get(data, "delete_one", "deleteOneBase") or {}
    return RoutesOptions(
        update_one=_parse_mutation_route(_get(data, "update_one", "updateOneBase")),
        replace_one=_parse_mutation_route(_get(data, "replace_one", "replaceOneBase")),
        delete_one=DeleteRouteOptions(
            return_deleted=bool(_get(delete_conf, "return_deleted", "returnDeleted", False)),
        ),
    )
