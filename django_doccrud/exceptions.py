"""
Django-DocCrud Exceptions

Tagged error kinds raised by the engine. The transport layer maps ``code``
to whatever protocol-level status it needs.

Store driver failures (pymongo errors, connectivity problems, constraint
violations) are never wrapped: they propagate to the caller unchanged.
"""


class DocCrudError(Exception):
    """Base class for errors raised by django-doccrud."""

    code = "ERROR"
    default_message = "An error occurred"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"code": self.code, "error": self.message}


class InvalidInput(DocCrudError):
    """
    Client-caused error: empty payloads, unknown filter operators,
    unresolvable relation paths.
    """

    code = "BAD_REQUEST"
    default_message = "Bad request"


class NotFound(DocCrudError):
    """Identity lookup yielded no document."""

    code = "NOT_FOUND"
    default_message = "Not found"

    def __init__(self, entity_name=None, message=None):
        self.entity_name = entity_name
        if message is None and entity_name:
            message = f"{entity_name} not found"
        super().__init__(message)


class SchemaError(DocCrudError):
    """Raised at startup when schema definitions reference unknown entities."""

    code = "CONFIGURATION"
    default_message = "Invalid schema configuration"
