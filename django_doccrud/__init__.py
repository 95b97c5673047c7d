"""
Django-DocCrud: CRUD Query Translation for Document Stores

Turns a transport-agnostic query descriptor (filters, sort, pagination,
field selection, relation joins) into an executable MongoDB query while
enforcing route-level ownership constraints and administrator field and
relation policy, then shapes the store's answer into documents or pages.

Example:
    from django_doccrud import CrudService, MongoStore, QueryDescriptor, RouteOptions

    service = CrudService(MongoStore(db["posts"], graphs["post"]), graphs["post"])
    result = service.get_many(
        QueryDescriptor.from_dict({'fields': 'title', 'page': 1, 'limit': 20}),
        RouteOptions.from_dict({'query': {'join': {'author': {'eager': True}}}}),
    )
"""

__version__ = "26.10.0"

# Request and policy types
from django_doccrud.descriptor import (
    QueryDescriptor,
    QueryFilter,
    ParamFilter,
    JoinRequest,
    SortSpec,
)
from django_doccrud.options import (
    RouteOptions,
    QueryOptions,
    FieldPolicy,
    JoinOption,
    RoutesOptions,
    MutationRouteOptions,
    DeleteRouteOptions,
)

# Schema
from django_doccrud.schema import SchemaGraph, Relation, build_schema_graphs

# Query translation
from django_doccrud.filters import merge_filters, query_filter_to_search, check_filter_fields, OPERATORS
from django_doccrud.fields import resolve_projection, get_allowed_columns
from django_doccrud.relations import RelationResolver, PopulatePlan, merge_plans
from django_doccrud.query import QueryAssembler, AssembledQuery

# Results
from django_doccrud.response import PageEnvelope, create_page_info, decide_pagination

# Execution
from django_doccrud.store import StoreDriver, DocumentQuery
from django_doccrud.mongo import MongoStore
from django_doccrud.service import CrudService

# Errors
from django_doccrud.exceptions import DocCrudError, InvalidInput, NotFound, SchemaError

# Configuration
from django_doccrud.conf import doccrud_settings

__all__ = [
    # Version
    "__version__",
    # Descriptor
    "QueryDescriptor",
    "QueryFilter",
    "ParamFilter",
    "JoinRequest",
    "SortSpec",
    # Options
    "RouteOptions",
    "QueryOptions",
    "FieldPolicy",
    "JoinOption",
    "RoutesOptions",
    "MutationRouteOptions",
    "DeleteRouteOptions",
    # Schema
    "SchemaGraph",
    "Relation",
    "build_schema_graphs",
    # Query
    "merge_filters",
    "query_filter_to_search",
    "check_filter_fields",
    "OPERATORS",
    "resolve_projection",
    "get_allowed_columns",
    "RelationResolver",
    "PopulatePlan",
    "merge_plans",
    "QueryAssembler",
    "AssembledQuery",
    # Response
    "PageEnvelope",
    "create_page_info",
    "decide_pagination",
    # Execution
    "StoreDriver",
    "DocumentQuery",
    "MongoStore",
    "CrudService",
    # Errors
    "DocCrudError",
    "InvalidInput",
    "NotFound",
    "SchemaError",
    # Settings
    "doccrud_settings",
]
