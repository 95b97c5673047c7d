"""
Django-DocCrud Schema Graph

Static description of entities and the reference relations between them.
Graphs are built once at startup by build_schema_graphs() and are read-only
afterwards; relation paths are resolved by walking the precomputed edges.

Example:
    graphs = build_schema_graphs({
        'post': {
            'collection': 'posts',
            'fields': ['_id', 'title', 'body', 'author'],
            'relations': {
                'author': {'ref': 'user'},
                'comments': {'ref': 'comment', 'local_field': '_id',
                             'foreign_field': 'post', 'just_one': False},
            },
        },
        'user': {'fields': ['_id', 'name', 'email', 'password']},
        'comment': {'fields': ['_id', 'post', 'text', 'author'],
                    'relations': {'author': {'ref': 'user'}}},
    })
    post_schema = graphs['post']
"""

from types import MappingProxyType

from django_doccrud.conf import doccrud_settings
from django_doccrud.exceptions import SchemaError


class Relation:
    """
    A reference edge from one entity to another.

    Attributes:
        name: Relation name (the key the populated value is attached under)
        target: Target SchemaGraph
        local_field: Field on the source document holding the reference
        foreign_field: Field on the target document matched against it
        just_one: True for a single document, False for a list
    """

    __slots__ = ("name", "target", "local_field", "foreign_field", "just_one")

    def __init__(self, name, target, local_field=None, foreign_field="_id", just_one=True):
        self.name = name
        self.target = target
        self.local_field = local_field or name
        self.foreign_field = foreign_field
        self.just_one = just_one

    def __repr__(self):
        return f"<Relation {self.name} -> {self.target.name}>"


class SchemaGraph:
    """Field set and declared relations of one entity."""

    def __init__(self, name, fields, collection=None, primary_keys=None):
        self.name = name
        self.collection = collection or name
        self._fields = tuple(fields)
        self.primary_keys = tuple(primary_keys or (doccrud_settings.PRIMARY_KEY,))
        self._relations = {}

    @property
    def relations(self):
        return MappingProxyType(self._relations)

    def field_names(self):
        """Ordered field names of the entity."""
        return list(self._fields)

    def relation(self, name):
        """Return the Relation declared under ``name``, or None."""
        return self._relations.get(name)

    def __repr__(self):
        return f"<SchemaGraph {self.name}>"


def build_schema_graphs(definitions):
    """
    Build every SchemaGraph and wire the relation edges between them.

    Args:
        definitions: Mapping of entity name -> definition dict with keys
            ``fields`` (required), ``collection``, ``primary_keys`` and
            ``relations`` (name -> {ref, local_field, foreign_field, just_one})

    Returns:
        Dict of entity name -> SchemaGraph

    Raises:
        SchemaError: If a definition has no fields or a relation references
            an entity that is not defined
    """
    graphs = {}
    for name, definition in definitions.items():
        if not definition.get("fields"):
            raise SchemaError(f"Entity '{name}' declares no fields")
        graphs[name] = SchemaGraph(
            name,
            definition["fields"],
            collection=definition.get("collection"),
            primary_keys=definition.get("primary_keys"),
        )

    for name, definition in definitions.items():
        for rel_name, rel in (definition.get("relations") or {}).items():
            ref = rel.get("ref")
            if ref not in graphs:
                raise SchemaError(f"Relation '{name}.{rel_name}' references unknown entity '{ref}'")
            graphs[name]._relations[rel_name] = Relation(
                rel_name,
                graphs[ref],
                local_field=rel.get("local_field"),
                foreign_field=rel.get("foreign_field", "_id"),
                just_one=rel.get("just_one", True),
            )

    return graphs
