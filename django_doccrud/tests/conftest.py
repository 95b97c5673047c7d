"""
Pytest configuration for django-doccrud tests.
"""

import os
import sys

import pytest

# Add the package root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_configure():
    """Configure Django settings before tests run."""
    from django.conf import settings

    if not settings.configured:
        settings.configure(
            SECRET_KEY="test-secret-key",
            DEBUG=True,
            INSTALLED_APPS=[],
            DATABASES={},
            USE_TZ=True,
            DJANGO_DOCCRUD={
                "DEFAULT_LIMIT": None,
                "MAX_LIMIT": None,
                "MAX_RELATION_DEPTH": 3,
            },
        )

    import django

    django.setup()


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings so per-test overrides never leak."""
    from django_doccrud.conf import doccrud_settings

    doccrud_settings.reload()
    yield
    doccrud_settings.reload()


@pytest.fixture
def settings_override():
    """Override DJANGO_DOCCRUD keys for the duration of a test."""
    from django.conf import settings
    from django_doccrud.conf import doccrud_settings

    original = settings.DJANGO_DOCCRUD

    def apply(**values):
        settings.DJANGO_DOCCRUD = {**original, **values}
        doccrud_settings.reload()

    yield apply

    settings.DJANGO_DOCCRUD = original
    doccrud_settings.reload()


SCHEMA_DEFINITIONS = {
    "post": {
        "collection": "posts",
        "fields": ["_id", "title", "body", "status", "secret", "author", "blog"],
        "relations": {
            "author": {"ref": "user"},
            "comments": {"ref": "comment", "local_field": "_id", "foreign_field": "post", "just_one": False},
        },
    },
    "user": {
        "collection": "users",
        "fields": ["_id", "name", "email", "password", "company"],
        "relations": {
            "company": {"ref": "company"},
        },
    },
    "comment": {
        "collection": "comments",
        "fields": ["_id", "post", "text", "author"],
        "relations": {
            "author": {"ref": "user"},
        },
    },
    "company": {
        "collection": "companies",
        "fields": ["_id", "name"],
    },
}


@pytest.fixture
def graphs():
    from django_doccrud.schema import build_schema_graphs

    return build_schema_graphs(SCHEMA_DEFINITIONS)


@pytest.fixture
def post_schema(graphs):
    return graphs["post"]
