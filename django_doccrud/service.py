"""
Django-DocCrud Crud Service

Read flows and mutation coordinators for one entity. Each call takes the
per-request QueryDescriptor plus the route's RouteOptions, builds its query
through the QueryAssembler and delegates execution to the injected
StoreDriver.

Example:
    service = CrudService(MongoStore(db["posts"], graphs["post"]), graphs["post"])

    page = service.get_many(descriptor, route_options)
    post = service.update_one(descriptor, {"title": "New title"}, route_options)
"""

import logging

from django_doccrud.exceptions import InvalidInput, NotFound
from django_doccrud.filters import coerce_identity, overlay, param_filters_to_dict
from django_doccrud.query import QueryAssembler
from django_doccrud.response import create_page_info, decide_pagination, serialize_document


logger = logging.getLogger("django_doccrud")

EMPTY_DATA_MESSAGE = "Empty data. Nothing to save."
MISSING_IDENTITY_MESSAGE = "Missing identity. Nothing to match."


class CrudService:
    """
    CRUD operations over a document store.

    Args:
        store: StoreDriver implementation
        schema: SchemaGraph of the entity
        assembler: Optional QueryAssembler (built from ``schema`` if omitted)
    """

    def __init__(self, store, schema, assembler=None):
        self.store = store
        self.schema = schema
        self.assembler = assembler or QueryAssembler(schema)

    @property
    def alias(self):
        """Display name used in error messages."""
        return self.schema.name

    @property
    def primary_key(self):
        return self.schema.primary_keys[0]

    # Reads

    def get_many(self, descriptor, options):
        """
        Fetch a collection.

        Returns a PageEnvelope when the descriptor asks for a page or offset
        and a positive page size is resolved, else a bare list. The total is
        counted separately with the same filter, so it may be stale relative
        to the page under concurrent writes.
        """
        query = self.assembler.assemble(descriptor, options, many=True)
        data = self._run(query)

        if decide_pagination(descriptor, query.limit):
            total = self.store.count_documents(query.filter)
            return create_page_info(
                [serialize_document(d) for d in data],
                total,
                query.limit,
                query.skip,
            )

        return [serialize_document(d) for d in data]

    def get_one(self, descriptor, options):
        return serialize_document(self.get_one_or_fail(descriptor, options))

    def get_one_or_fail(self, descriptor, options):
        """Fetch one projected and populated document, or raise NotFound."""
        query = self.assembler.assemble(descriptor, options, many=False)
        found = self._run(query)
        if not found:
            self._not_found()
        return found

    def get_one_shallow_or_fail(self, where):
        """
        Identity-only lookup without projection or population.

        Raises:
            InvalidInput: If ``where`` is empty, before any store call
            NotFound: If nothing matches
        """
        if not where:
            self._bad_request(MISSING_IDENTITY_MESSAGE)
        where = coerce_identity(where, self.schema.primary_keys)
        found = self.store.find_one(where).exec()
        if not found:
            self._not_found()
        return found

    # Writes

    def create_one(self, descriptor, payload):
        entity = self.prepare_entity_before_save(payload, descriptor)
        if entity is None:
            self._bad_request(EMPTY_DATA_MESSAGE)

        logger.debug(f"Creating {self.alias}")
        return serialize_document(self.store.create(entity))

    def create_many(self, descriptor, bulk):
        """
        Create several documents at once.

        Args:
            descriptor: QueryDescriptor (params and auth-persist apply to every item)
            bulk: List of payloads, or a mapping with a ``bulk`` list
        """
        if isinstance(bulk, dict):
            bulk = bulk.get("bulk")
        if not isinstance(bulk, (list, tuple)) or not bulk:
            self._bad_request(EMPTY_DATA_MESSAGE)

        entities = [self.prepare_entity_before_save(item, descriptor) for item in bulk]
        entities = [e for e in entities if e is not None]
        if not entities:
            self._bad_request(EMPTY_DATA_MESSAGE)

        logger.debug(f"Creating {len(entities)} {self.alias} documents")
        return [serialize_document(d) for d in self.store.create(entities)]

    def update_one(self, descriptor, payload, options):
        """
        Partially update the document identified by the route params.

        Overlay order (later wins):
            existing, payload, params, auth_persist
        or, with ``allow_params_override``:
            existing, params, payload, auth_persist
        """
        route = options.routes.update_one
        params = param_filters_to_dict(descriptor.params_filter)
        auth_persist = descriptor.auth_persist or {}

        found = self._find_for_write(descriptor, options, route.return_shallow, params)
        existing = self._unpopulated(found, descriptor, options, route.return_shallow)

        if route.allow_params_override:
            to_save = overlay(existing, params, payload, auth_persist)
        else:
            to_save = overlay(existing, payload, params, auth_persist)

        logger.debug(f"Updating {self.alias} {found[self.primary_key]}")
        updated = self.store.find_one_and_update({self.primary_key: found[self.primary_key]}, to_save)

        if route.return_shallow:
            return serialize_document(updated)

        # Identity fields may have changed; re-fetch with their new values
        return self.get_one(descriptor.with_params_values(updated or {}), options)

    def replace_one(self, descriptor, payload, options):
        """
        Replace the document identified by the route params.

        Overlay order (later wins):
            payload, params, auth_persist
        or, with ``allow_params_override``:
            params, payload, auth_persist
        """
        route = options.routes.replace_one
        params = param_filters_to_dict(descriptor.params_filter)
        auth_persist = descriptor.auth_persist or {}

        found = self._find_for_write(descriptor, options, route.return_shallow, params)

        if route.allow_params_override:
            to_save = overlay(params, payload, auth_persist)
        else:
            to_save = overlay(payload, params, auth_persist)

        logger.debug(f"Replacing {self.alias} {found[self.primary_key]}")
        self.store.replace_one({self.primary_key: found[self.primary_key]}, to_save)
        return serialize_document(self.store.find_by_id(found[self.primary_key]))

    def delete_one(self, descriptor, options):
        """
        Delete the document identified by the route params.

        Returns the deleted snapshot merged with the params when the route has
        ``return_deleted``, else None.
        """
        params = param_filters_to_dict(descriptor.params_filter)
        found = self.get_one_shallow_or_fail(params)

        logger.debug(f"Deleting {self.alias} {found[self.primary_key]}")
        deleted = self.store.find_one_and_delete({self.primary_key: found[self.primary_key]})

        if options.routes.delete_one.return_deleted:
            return serialize_document(overlay(deleted, params))
        return None

    def prepare_entity_before_save(self, payload, descriptor):
        """
        Apply route params and auth-persisted fields to a payload.

        Returns None for anything that is not a non-empty mapping.
        """
        if not isinstance(payload, dict) or not payload:
            return None

        return overlay(
            payload,
            param_filters_to_dict(descriptor.params_filter),
            descriptor.auth_persist or {},
        )

    # Helpers

    def _run(self, query):
        if query.many:
            cursor = self.store.find(query.filter, query.projection)
        else:
            cursor = self.store.find_one(query.filter, query.projection)
        return cursor.apply(query).exec()

    def _find_for_write(self, descriptor, options, shallow, params):
        if not params:
            self._bad_request(MISSING_IDENTITY_MESSAGE)
        if shallow:
            return self.get_one_shallow_or_fail(params)
        return self.get_one_or_fail(descriptor, options)

    def _unpopulated(self, found, descriptor, options, shallow):
        """Drop populated relation values so they are never written back."""
        if shallow:
            return dict(found)

        query_options = options.query
        populated = {plan.path for plan in self.assembler.relations.resolve_joins(descriptor.join, query_options.join)}
        return {k: v for k, v in found.items() if k not in populated}

    def _bad_request(self, message):
        logger.debug(f"Invalid input for {self.alias}: {message}")
        raise InvalidInput(message)

    def _not_found(self):
        logger.debug(f"{self.alias} not found")
        raise NotFound(self.alias)

