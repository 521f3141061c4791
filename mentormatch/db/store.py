"""
Document Store - the persistence seam used by every service.

A store holds named collections of JSON-like documents keyed by a string id.
Services never talk to pymongo directly; they go through this interface so
the same workflow code runs against MongoDB in deployments and against the
in-memory store in tests.

Surface (both on the store and on an open transaction):
- get(collection, id)                      -> document or None
- query(collection, filters, order_by, limit) -> list of documents
- set(collection, id, data)                -> create or replace
- update(collection, id, data)             -> merge fields, NotFoundError if missing
- delete(collection, id)
- add(collection, data)                    -> new id

run_transaction(fn) calls fn(tx) and commits every write made through tx,
or none of them if fn raises.

Filters are (field, op, value) tuples, op in ==, !=, in, not-in, <, <=, >, >=.
order_by follows the pymongo sort spec: [("field", 1 | -1)].
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from mentormatch.core.config import get_settings
from mentormatch.core.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from mentormatch.core.logging_config import logger


Filter = Tuple[str, str, Any]
OrderBy = Sequence[Tuple[str, int]]
T = TypeVar("T")

FILTER_OPERATORS = ("==", "!=", "in", "not-in", "<", "<=", ">", ">=")

_MONGO_OPERATORS = {
    "!=": "$ne",
    "in": "$in",
    "not-in": "$nin",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
}


def new_document_id() -> str:
    """Generate a new document id (ObjectId hex, same shape Mongo would assign)."""
    return str(ObjectId())


# ============================================================
# INTERFACE
# ============================================================

class DocumentReader(ABC):
    """Read/write surface shared by stores and transactions."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Optional[List[Filter]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = new_document_id()
        self.set(collection, doc_id, data)
        return doc_id


class Transaction(DocumentReader):
    """Handle passed to a run_transaction callback."""


class DocumentStore(DocumentReader):

    @abstractmethod
    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        ...


def validate_filters(filters: Optional[List[Filter]]) -> List[Filter]:
    filters = list(filters or [])
    for field, op, _ in filters:
        if op not in FILTER_OPERATORS:
            raise ValidationError(f"Unsupported filter operator '{op}' on '{field}'")
    return filters


# ============================================================
# MONGODB IMPLEMENTATION
# ============================================================

def _to_mongo_query(filters: List[Filter]) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    for field, op, value in validate_filters(filters):
        key = "_id" if field == "id" else field
        clause = query.setdefault(key, {})
        if op == "==":
            clause["$eq"] = value
        else:
            clause[_MONGO_OPERATORS[op]] = list(value) if op in ("in", "not-in") else value
    return query


def _from_mongo(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Expose Mongo's _id as a string id field."""
    if doc is None:
        return None
    doc["id"] = str(doc.pop("_id"))
    return doc


def _to_mongo(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in ("id", "_id")}


class _MongoOperations(DocumentReader):
    """Shared CRUD over a pymongo Database, optionally bound to a session."""

    def __init__(self, db: Database, session: Optional[ClientSession] = None):
        self._db = db
        self._session = session

    def get(self, collection, doc_id):
        return _from_mongo(self._db[collection].find_one({"_id": doc_id}, session=self._session))

    def query(self, collection, filters=None, order_by=None, limit=None):
        cursor = self._db[collection].find(_to_mongo_query(filters), session=self._session)
        if order_by:
            cursor = cursor.sort([("_id" if f == "id" else f, d) for f, d in order_by])
        if limit:
            cursor = cursor.limit(limit)
        return [_from_mongo(doc) for doc in cursor]

    def set(self, collection, doc_id, data):
        try:
            self._db[collection].replace_one(
                {"_id": doc_id}, _to_mongo(data), upsert=True, session=self._session
            )
        except DuplicateKeyError as e:
            raise ConflictError(f"Duplicate {collection} document", code="DUPLICATE_KEY") from e

    def update(self, collection, doc_id, data):
        try:
            result = self._db[collection].find_one_and_update(
                {"_id": doc_id},
                {"$set": _to_mongo(data)},
                return_document=ReturnDocument.AFTER,
                session=self._session,
            )
        except DuplicateKeyError as e:
            raise ConflictError(f"Duplicate {collection} document", code="DUPLICATE_KEY") from e
        if result is None:
            raise NotFoundError(collection, doc_id)

    def delete(self, collection, doc_id):
        self._db[collection].delete_one({"_id": doc_id}, session=self._session)


class MongoTransaction(_MongoOperations, Transaction):
    """Operations bound to a client session inside with_transaction."""


class MongoDocumentStore(_MongoOperations, DocumentStore):
    """
    MongoDB-backed store.

    Transactions need a replica set (a single-node one is fine for
    development). pymongo's with_transaction retries the callback on
    TransientTransactionError, so callbacks must be safe to re-run: they
    re-read everything they write.
    """

    def __init__(self, db: Optional[Database] = None):
        if db is None:
            from mentormatch.db.mongodb import get_mongo_db
            db = get_mongo_db()
        super().__init__(db)

    def run_transaction(self, fn):
        client = self._db.client
        try:
            with client.start_session() as session:
                return session.with_transaction(
                    lambda s: fn(MongoTransaction(self._db, s))
                )
        except PyMongoError as e:
            logger.log_error_with_context(e, context="MongoDocumentStore.run_transaction")
            raise InternalError("Database transaction failed") from e


# ============================================================
# FASTAPI DEPENDENCY
# ============================================================

_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """
    FastAPI dependency - process-wide document store (singleton pattern).

    STORE_BACKEND=memory selects the in-memory store; anything else uses MongoDB.
    """
    global _store
    if _store is None:
        settings = get_settings()
        if settings.store_backend == "memory":
            from mentormatch.db.memory_store import InMemoryDocumentStore
            _store = InMemoryDocumentStore()
        else:
            _store = MongoDocumentStore()
        logger.info(f"Document store initialised ({settings.store_backend})")
    return _store
