"""
Django-DocCrud Store Driver Contract

The engine never talks to a database directly. It builds queries and hands
them to a StoreDriver, which owns connections, execution and population.

Subclass StoreDriver to plug in a document store; see
django_doccrud.mongo.MongoStore for the pymongo implementation.
"""

from abc import ABC, abstractmethod


class DocumentQuery:
    """
    Chainable, lazily executed find query.

    Example:
        docs = (
            store.find({"status": "published"}, {"title": 1})
            .populate(plan)
            .sort((("created_at", -1),))
            .limit(10)
            .skip(20)
            .exec()
        )
    """

    def __init__(self, driver, filter=None, projection=None, many=True):
        self.driver = driver
        self.filter = dict(filter or {})
        self.projection = projection
        self.many = many
        self.populates = []
        self.sort_spec = ()
        self.limit_value = None
        self.skip_value = None

    def select(self, projection):
        self.projection = projection
        return self

    def populate(self, plan):
        self.populates.append(plan)
        return self

    def sort(self, sort_spec):
        self.sort_spec = tuple(sort_spec or ())
        return self

    def limit(self, value):
        self.limit_value = value
        return self

    def skip(self, value):
        self.skip_value = value
        return self

    def apply(self, query):
        """Attach population, sort and pagination bounds of an AssembledQuery."""
        for plan in query.populate:
            self.populate(plan)
        if query.many:
            self.sort(query.sort)
            if query.limit is not None:
                self.limit(query.limit)
            if query.skip:
                self.skip(query.skip)
        return self

    def exec(self):
        """Run the query: a list of documents, or one document / None."""
        return self.driver.execute(self)


class StoreDriver(ABC):
    """
    Base class for store drivers.

    Every abstract method must be implemented; a driver missing one cannot be
    instantiated.

    All failures raised by an implementation (connectivity, constraint
    violations, timeouts) propagate to the caller untouched; the engine adds
    no retries.
    """

    def find_one(self, filter, projection=None):
        """Return a single-document DocumentQuery."""
        return DocumentQuery(self, filter, projection, many=False)

    def find(self, filter, projection=None):
        """Return a collection DocumentQuery."""
        return DocumentQuery(self, filter, projection, many=True)

    @abstractmethod
    def execute(self, query):
        """Execute a DocumentQuery."""

    @abstractmethod
    def count_documents(self, filter):
        """Count the documents matching ``filter``."""

    @abstractmethod
    def find_one_and_update(self, identity, document):
        """Apply ``document`` to the match and return the updated document."""

    @abstractmethod
    def find_one_and_delete(self, identity):
        """Delete the match and return it, or None."""

    @abstractmethod
    def create(self, documents):
        """Insert one document (dict) or many (list); return what was stored."""

    @abstractmethod
    def replace_one(self, identity, document):
        """Replace the match with ``document``, keeping its identity."""

    @abstractmethod
    def find_by_id(self, value):
        """Return the document whose primary key is ``value``, or None."""
