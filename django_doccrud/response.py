"""
Django-DocCrud Response Utilities

Decides whether a collection result needs a page envelope and shapes the
documents handed back to the transport layer.

Features:
- Pagination decision and page envelope construction
- Automatic serialization of BSON/common types
"""

import math
from dataclasses import dataclass
from uuid import UUID

from bson import ObjectId


@dataclass(frozen=True)
class PageEnvelope:
    """A page of results plus counts."""

    data: list
    count: int
    total: int
    page: int
    page_count: int

    def to_dict(self):
        return {
            "data": self.data,
            "count": self.count,
            "total": self.total,
            "page": self.page,
            "pageCount": self.page_count,
        }


def decide_pagination(descriptor, take):
    """
    Whether a collection result should be wrapped in a PageEnvelope.

    Only when the caller asked for a page or an offset AND the resolved page
    size is a positive int; otherwise the bare list is returned.

    Examples:
        >>> decide_pagination(QueryDescriptor(page=1), 10)
        True
        >>> decide_pagination(QueryDescriptor(page=1), None)
        False
        >>> decide_pagination(QueryDescriptor(), 10)
        False
    """
    asked = isinstance(descriptor.page, int) or isinstance(descriptor.offset, int)
    return asked and isinstance(take, int) and take > 0


def create_page_info(data, total, limit, offset):
    """
    Build a PageEnvelope for a fetched page.

    Args:
        data: Documents of the current page
        total: Count of all documents matching the filter (ignoring pagination)
        limit: Page size
        offset: Number of skipped documents

    Returns:
        PageEnvelope

    Example:
        >>> create_page_info(list(range(10)), 25, 10, 10).to_dict()
        {'data': [...], 'count': 10, 'total': 25, 'page': 2, 'pageCount': 3}
    """
    offset = offset or 0
    return PageEnvelope(
        data=data,
        count=len(data),
        total=total,
        page=offset // limit + 1 if limit else 1,
        page_count=math.ceil(total / limit) if limit and total else 1,
    )


def serialize_value(value):
    """
    Serialize a value for a JSON-friendly response.

    Handles common document types:
    - ObjectId -> hex string
    - date/datetime -> ISO format string
    - UUID -> string
    - nested dicts and lists, recursively

    Args:
        value: Value to serialize

    Returns:
        JSON-serializable value
    """
    if value is None:
        return None

    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]

    # DateTime/Date
    if hasattr(value, "isoformat"):
        return value.isoformat()

    if isinstance(value, (ObjectId, UUID)):
        return str(value)

    return value


def serialize_document(document):
    """Serialize a document (or None) returned by the store."""
    if document is None:
        return None
    return serialize_value(dict(document))
