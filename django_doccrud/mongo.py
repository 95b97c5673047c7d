"""
Django-DocCrud MongoDB Store

StoreDriver implementation over a pymongo Collection.

Population is resolved with one follow-up query per plan level:
``{foreign_field: {"$in": <local values>}}`` against the related collection.
Reference fields fetched only to match related documents are removed again
before documents are returned, so population never widens a projection.

Example:
    from pymongo import MongoClient

    db = MongoClient()["blog"]
    store = MongoStore(db["posts"], graphs["post"])
    service = CrudService(store, graphs["post"])
"""

import logging

from pymongo import ReturnDocument

from django_doccrud.filters import coerce_identity
from django_doccrud.store import StoreDriver


logger = logging.getLogger("django_doccrud")


def _is_exclusion(projection):
    return bool(projection) and all(not v for v in projection.values())


def _require_fields(projection, fields):
    """
    Make sure ``fields`` are returned by ``projection``.

    Returns:
        Tuple of (projection, list of fields that had to be added)
    """
    if not projection:
        return projection, []

    projection = dict(projection)
    added = []
    exclusion = _is_exclusion(projection)
    for name in fields:
        if exclusion:
            if name in projection:
                del projection[name]
                added.append(name)
        elif not projection.get(name, name == "_id"):
            projection[name] = 1
            added.append(name)

    # Removing every exclusion leaves {}, which MongoDB reads as "all fields"
    return projection or None, added


def _strip(documents, fields, keep):
    for document in documents:
        for name in fields:
            if name not in keep:
                document.pop(name, None)


def _as_keys(value):
    if value is None:
        return []
    if isinstance(value, list):
        return [v for v in value if v is not None]
    return [value]


class MongoStore(StoreDriver):
    """
    pymongo-backed store driver for one entity.

    Args:
        collection: pymongo Collection holding the entity's documents
        schema: SchemaGraph of the entity; related collections are looked up
            on the same database by each target schema's ``collection`` name
    """

    def __init__(self, collection, schema):
        self.collection = collection
        self.database = collection.database
        self.schema = schema

    @property
    def primary_key(self):
        return self.schema.primary_keys[0]

    def _local_fields(self, schema, plans):
        fields = []
        for plan in plans:
            relation = schema.relation(plan.path)
            if relation is not None:
                fields.append(relation.local_field)
        return fields

    def execute(self, query):
        plans = list(query.populates)
        projection, added = _require_fields(query.projection, self._local_fields(self.schema, plans))

        if query.many:
            cursor = self.collection.find(query.filter, projection)
            if query.sort_spec:
                cursor = cursor.sort(list(query.sort_spec))
            if query.skip_value:
                cursor = cursor.skip(query.skip_value)
            if query.limit_value:
                cursor = cursor.limit(query.limit_value)
            documents = list(cursor)
        else:
            document = self.collection.find_one(query.filter, projection)
            documents = [document] if document is not None else []

        for plan in plans:
            self.populate(documents, self.schema, plan)
        _strip(documents, added, keep={plan.path for plan in plans})

        if query.many:
            return documents
        return documents[0] if documents else None

    def populate(self, documents, schema, plan):
        """
        Attach related documents for ``plan`` to ``documents`` in place.

        Args:
            documents: Documents of ``schema``
            schema: SchemaGraph the plan's relation is declared on
            plan: PopulatePlan
        """
        relation = schema.relation(plan.path)
        if relation is None or not documents:
            return

        target = relation.target
        nested = [plan.populate] if plan.populate is not None else []

        values = []
        for document in documents:
            values.extend(_as_keys(document.get(relation.local_field)))

        projection, added = _require_fields(
            plan.select,
            [relation.foreign_field, *self._local_fields(target, nested)],
        )

        related = []
        if values:
            collection = self.database[target.collection]
            related = list(collection.find({relation.foreign_field: {"$in": values}}, projection))
            logger.debug(
                f"Populated {schema.name}.{relation.name}: {len(values)} references, {len(related)} documents"
            )

        for nested_plan in nested:
            self.populate(related, target, nested_plan)

        index = {}
        for item in related:
            for key in _as_keys(item.get(relation.foreign_field)):
                index.setdefault(key, []).append(item)

        for document in documents:
            matches = []
            for key in _as_keys(document.get(relation.local_field)):
                matches.extend(index.get(key, []))
            if relation.just_one:
                document[relation.name] = matches[0] if matches else None
            else:
                document[relation.name] = matches

        _strip(related, added, keep={p.path for p in nested})

    def count_documents(self, filter):
        return self.collection.count_documents(filter)

    def _without_identity(self, document):
        return {k: v for k, v in document.items() if k not in self.schema.primary_keys}

    def find_one_and_update(self, identity, document):
        changes = self._without_identity(document)
        if not changes:
            return self.collection.find_one(identity)
        return self.collection.find_one_and_update(
            identity,
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )

    def find_one_and_delete(self, identity):
        return self.collection.find_one_and_delete(identity)

    def create(self, documents):
        if isinstance(documents, list):
            documents = [dict(d) for d in documents]
            self.collection.insert_many(documents)
            return documents

        document = dict(documents)
        self.collection.insert_one(document)
        return document

    def replace_one(self, identity, document):
        return self.collection.replace_one(identity, self._without_identity(document))

    def find_by_id(self, value):
        where = coerce_identity({self.primary_key: value}, self.schema.primary_keys)
        return self.collection.find_one(where)
