"""
Django-DocCrud Settings

Configuration is read from Django settings under the DJANGO_DOCCRUD key.
All settings have sensible defaults and are validated on first read;
mistakes surface as django.core.exceptions.ImproperlyConfigured.

Example:
    # settings.py
    DJANGO_DOCCRUD = {
        'DEFAULT_LIMIT': 25,
        'MAX_LIMIT': 100,
        'MAX_RELATION_DEPTH': 2,
    }
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULTS = {
    # Pagination
    "DEFAULT_LIMIT": None,  # None = unbounded unless the route sets a limit
    "MAX_LIMIT": None,
    # Relations
    "MAX_RELATION_DEPTH": 3,
    "RELATION_SEPARATOR": ".",
    # Identity
    "PRIMARY_KEY": "_id",
    "COERCE_OBJECT_ID": True,  # Convert 24-hex string ids to ObjectId on lookups
    # Logging
    "AUDIT_QUERIES": False,  # Log every assembled query at INFO level
}


def _positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _optional_positive_int(value):
    return value is None or _positive_int(value)


def _non_empty_str(value):
    return isinstance(value, str) and bool(value)


# Setting -> (check, expected value description)
VALIDATORS = {
    "DEFAULT_LIMIT": (_optional_positive_int, "None or a positive int"),
    "MAX_LIMIT": (_optional_positive_int, "None or a positive int"),
    "MAX_RELATION_DEPTH": (_optional_positive_int, "None or a positive int"),
    "RELATION_SEPARATOR": (_non_empty_str, "a non-empty string"),
    "PRIMARY_KEY": (_non_empty_str, "a non-empty string"),
    "COERCE_OBJECT_ID": (lambda v: isinstance(v, bool), "a bool"),
    "AUDIT_QUERIES": (lambda v: isinstance(v, bool), "a bool"),
}


class DocCrudSettings:
    """
    Lazily resolved, validated django-doccrud settings. For example:

        from django_doccrud.conf import doccrud_settings
        print(doccrud_settings.MAX_RELATION_DEPTH)

    Values come from the DJANGO_DOCCRUD mapping in Django settings, falling
    back to DEFAULTS. Each value is checked the first time it is read and
    cached until reload().

    Raises:
        AttributeError: On access to a name that is not a setting
        ImproperlyConfigured: If DJANGO_DOCCRUD holds unknown keys or a
            value of the wrong shape
    """

    def __init__(self, defaults=None, validators=None):
        self.defaults = defaults or DEFAULTS
        self.validators = VALIDATORS if validators is None else validators
        self._cached_attrs = set()

    @property
    def user_settings(self):
        if not hasattr(self, "_user_settings"):
            user_settings = getattr(settings, "DJANGO_DOCCRUD", None) or {}
            unknown = sorted(set(user_settings) - set(self.defaults))
            if unknown:
                raise ImproperlyConfigured(f"Unknown DJANGO_DOCCRUD settings: {', '.join(unknown)}")
            self._user_settings = user_settings
        return self._user_settings

    def __getattr__(self, attr):
        if attr not in self.defaults:
            raise AttributeError(f"Invalid django-doccrud setting: '{attr}'")

        val = self.user_settings.get(attr, self.defaults[attr])

        check = self.validators.get(attr)
        if check is not None and not check[0](val):
            raise ImproperlyConfigured(f"DJANGO_DOCCRUD['{attr}'] must be {check[1]}, got {val!r}")

        self._cached_attrs.add(attr)
        setattr(self, attr, val)
        return val

    def reload(self):
        """Forget cached values and re-read Django settings on next access."""
        for attr in self._cached_attrs:
            self.__dict__.pop(attr, None)
        self._cached_attrs.clear()
        self.__dict__.pop("_user_settings", None)


doccrud_settings = DocCrudSettings(DEFAULTS)
