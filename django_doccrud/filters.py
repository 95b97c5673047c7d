"""
Django-DocCrud Filter Utilities

Normalizes descriptor filters into a single MongoDB filter document.

Supports:
- Crud-style operators ($eq, $cont, $between, ...) translated to MongoDB
- Case-insensitive variants ($eqL, $contL, ...)
- Plain MongoDB filter mappings for static route filters
- Deterministic precedence: caller filters < static filter < params filter
"""

import re

from bson import ObjectId

from django_doccrud.conf import doccrud_settings
from django_doccrud.exceptions import InvalidInput


# Crud operators accepted in filter entries
OPERATORS = {
    # Comparisons
    "$eq",
    "$ne",
    "$gt",
    "$lt",
    "$gte",
    "$lte",
    "$in",
    "$notin",
    "$between",
    # Null checks
    "$isnull",
    "$notnull",
    # Text
    "$starts",
    "$ends",
    "$cont",
    "$excl",
    # Case-insensitive
    "$eqL",
    "$neL",
    "$startsL",
    "$endsL",
    "$contL",
    "$exclL",
    "$inL",
    "$notinL",
}

_COMPARISONS = {"$eq", "$ne", "$gt", "$lt", "$gte", "$lte"}


def _as_list(value):
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _regex(pattern, insensitive):
    condition = {"$regex": pattern}
    if insensitive:
        condition["$options"] = "i"
    return condition


def build_condition(operator, value):
    """
    Translate a crud operator and value into a MongoDB field condition.

    String values are escaped before being embedded in a regular expression,
    so caller input cannot inject regex syntax.

    Args:
        operator: Crud operator (see OPERATORS)
        value: Operand

    Returns:
        Dict usable as ``{field: condition}``

    Raises:
        InvalidInput: If the operator is unknown or the operand is malformed

    Examples:
        >>> build_condition("$gte", 18)
        {'$gte': 18}
        >>> build_condition("$starts", "Jo")
        {'$regex': '^Jo'}
        >>> build_condition("$between", [1, 5])
        {'$gte': 1, '$lte': 5}
        >>> build_condition("$notin", "draft")
        {'$nin': ['draft']}
    """
    if operator not in OPERATORS:
        raise InvalidInput(f"Invalid filter operator: '{operator}'")

    insensitive = operator.endswith("L")
    base = operator[:-1] if insensitive else operator

    if base in _COMPARISONS and not insensitive:
        return {base: value}

    if base == "$in" and not insensitive:
        return {"$in": _as_list(value)}
    if base == "$notin" and not insensitive:
        return {"$nin": _as_list(value)}

    if base == "$isnull":
        return {"$eq": None}
    if base == "$notnull":
        return {"$ne": None}

    if base == "$between":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise InvalidInput("'$between' requires a list of two values")
        return {"$gte": value[0], "$lte": value[1]}

    if base in ("$in", "$notin"):
        patterns = [re.compile(f"^{re.escape(str(v))}$", re.IGNORECASE) for v in _as_list(value)]
        return {"$in" if base == "$in" else "$nin": patterns}

    text = re.escape(str(value))
    if base == "$eq":
        return _regex(f"^{text}$", insensitive)
    if base == "$ne":
        return {"$not": re.compile(f"^{text}$", re.IGNORECASE)}
    if base == "$starts":
        return _regex(f"^{text}", insensitive)
    if base == "$ends":
        return _regex(f"{text}$", insensitive)
    if base == "$cont":
        return _regex(text, insensitive)

    # $excl
    return {"$not": re.compile(text, re.IGNORECASE if insensitive else 0)}


def query_filter_to_search(query_filter):
    """
    Convert a filter specification into a ``{field: condition}`` mapping.

    A sequence of QueryFilter entries is translated entry by entry; several
    entries on the same field combine operator-wise. A plain mapping passes
    through unchanged. Anything else yields an empty mapping.

    Args:
        query_filter: Sequence of QueryFilter, a mapping, or None

    Returns:
        Dict mapping field -> condition

    Examples:
        >>> query_filter_to_search([QueryFilter("age", "$gt", 18), QueryFilter("age", "$lt", 65)])
        {'age': {'$gt': 18, '$lt': 65}}
        >>> query_filter_to_search({"deleted": {"$ne": True}})
        {'deleted': {'$ne': True}}
        >>> query_filter_to_search(None)
        {}
    """
    if isinstance(query_filter, dict):
        return query_filter

    if not isinstance(query_filter, (list, tuple)):
        return {}

    search = {}
    for item in query_filter:
        name = getattr(item, "field", None)
        if not name:
            continue
        condition = build_condition(item.operator, item.value)
        existing = search.get(name)
        if isinstance(existing, dict):
            search[name] = {**existing, **condition}
        else:
            search[name] = condition
    return search


def check_filter_fields(filters, allowed):
    """
    Reject caller filters on fields the caller may not filter on.

    A filter field is accepted when its first dot-notation segment is in
    ``allowed``. Any segment starting with ``$`` is refused, so caller input
    can never introduce query operators such as ``$expr`` or ``$where``.

    Args:
        filters: Sequence of QueryFilter from the descriptor
        allowed: Field names the caller may filter on

    Raises:
        InvalidInput: On the first field that is not allowed

    Examples:
        >>> check_filter_fields([QueryFilter("status", "$eq", "x")], ["_id", "status"])
        >>> check_filter_fields([QueryFilter("$expr", "$eq", 1)], ["_id"])
        Traceback (most recent call last):
        ...
        InvalidInput: Filter denied: '$expr' not allowed for filtering
    """
    allowed = set(allowed)
    for item in filters or ():
        name = getattr(item, "field", None)
        if not name:
            continue
        segments = name.split(".")
        if any(s.startswith("$") for s in segments) or segments[0] not in allowed:
            raise InvalidInput(f"Filter denied: '{name}' not allowed for filtering")


def param_filters_to_dict(params_filter):
    """
    Flatten route params into ``{field: value}``.

    Example:
        >>> param_filters_to_dict([ParamFilter("blog", "b1")])
        {'blog': 'b1'}
    """
    return {p.field: p.value for p in params_filter or ()}


def overlay(*layers):
    """
    Merge mappings in order; later layers win on key collision.

    Example:
        >>> overlay({"a": 1, "b": 2}, {"a": 9}, {"a": 5})
        {'a': 5, 'b': 2}
    """
    result = {}
    for layer in layers:
        if layer:
            result.update(layer)
    return result


def merge_filters(descriptor, query_options):
    """
    Build the single search filter for a request.

    Precedence (later wins per field): caller filters, static route filter,
    route params filter. Params filters scope the request to its owner and
    can never be overridden by caller input or static configuration.

    Args:
        descriptor: QueryDescriptor
        query_options: QueryOptions of the route

    Returns:
        MongoDB filter document
    """
    return overlay(
        query_filter_to_search(descriptor.filters),
        query_filter_to_search(query_options.filter),
        param_filters_to_dict(descriptor.params_filter),
    )


def coerce_identity(where, primary_keys):
    """
    Convert 24-hex string primary key values to ObjectId.

    Route params arrive as strings while documents store ObjectIds. Does
    nothing when the COERCE_OBJECT_ID setting is off.

    Args:
        where: Filter mapping (not modified)
        primary_keys: Primary key field names

    Returns:
        New filter mapping
    """
    if not doccrud_settings.COERCE_OBJECT_ID:
        return dict(where)

    result = dict(where)
    for key in primary_keys:
        value = result.get(key)
        if isinstance(value, str) and ObjectId.is_valid(value):
            result[key] = ObjectId(value)
    return result
