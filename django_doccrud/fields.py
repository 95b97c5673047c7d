"""
Django-DocCrud Field Utilities

Computes which fields a query may project, given administrator field policy
and the fields a caller asked for.

Features:
- Allow-list / deny-list field policy (deny always wins)
- Caller field selection limited to policy-eligible fields
- Persisted and primary key fields always projected
- Nested relation selects with per-relation exclusions
"""


def get_allowed_columns(columns, policy):
    """
    Filter columns by an allow/exclude policy.

    Args:
        columns: Ordered list of column names
        policy: FieldPolicy (allow, exclude)

    Returns:
        List of eligible columns, in original order

    Examples:
        >>> get_allowed_columns(["a", "b", "c"], FieldPolicy())
        ['a', 'b', 'c']
        >>> get_allowed_columns(["a", "b", "c"], FieldPolicy(allow=("a", "b"), exclude=("b",)))
        ['a']
    """
    allow = policy.allow or ()
    exclude = policy.exclude or ()

    if not allow and not exclude:
        return list(columns)

    return [
        column
        for column in columns
        if (not exclude or column not in exclude) and (not allow or column in allow)
    ]


def resolve_projection(columns, policy, requested=(), persist=(), primary_keys=()):
    """
    Resolve the ordered projection list for a query.

    Output order is persisted fields, then eligible (and requested) columns,
    then primary keys, with duplicates removed. A caller can never obtain a
    column blocked by the policy, but persisted and primary key fields are
    always present because consumers rely on them.

    Args:
        columns: All column names of the entity
        policy: FieldPolicy
        requested: Caller-requested field names (empty = all eligible)
        persist: Fields always projected
        primary_keys: Identity fields, always projected

    Returns:
        List of field names

    Examples:
        >>> resolve_projection(["_id", "title", "secret"], FieldPolicy(exclude=("secret",)),
        ...                    requested=["title", "secret"], primary_keys=["_id"])
        ['title', '_id']
    """
    allowed = get_allowed_columns(columns, policy)

    if requested:
        selected = [field for field in requested if field in allowed]
    else:
        selected = allowed

    # Deduplicate while preserving order
    return list(dict.fromkeys([*persist, *selected, *primary_keys]))


def build_projection(fields):
    """
    Render a field list as a MongoDB inclusion projection.

    Returns None for an empty list, meaning "all fields".

    Example:
        >>> build_projection(["title", "_id"])
        {'title': 1, '_id': 1}
    """
    if not fields:
        return None
    return dict.fromkeys(fields, 1)


def build_field_select(select, exclude):
    """
    Build the projection for a populated relation.

    Requested sub-fields minus exclusions produce an inclusion projection.
    Without a sub-field request, exclusions produce an exclusion projection.
    Without either, every field of the related document is returned.

    Args:
        select: Requested sub-fields or None
        exclude: Policy-excluded sub-fields

    Returns:
        MongoDB projection dict or None

    Examples:
        >>> build_field_select(["name", "password"], ["password"])
        {'name': 1}
        >>> build_field_select(["password"], ["password"])
        {'_id': 1}
        >>> build_field_select(None, ["password"])
        {'password': 0}
        >>> build_field_select(None, [])
    """
    exclude = list(exclude or ())

    if select:
        included = [field for field in select if field not in exclude]
        # An empty projection means "everything" to MongoDB
        return dict.fromkeys(included or ["_id"], 1)

    if exclude:
        return dict.fromkeys(exclude, 0)

    return None
