"""
In-Memory Document Store

Process-local implementation of DocumentStore used by the test suite and by
STORE_BACKEND=memory demos.

- Documents live in plain dicts, deep-copied on the way in and out
- A re-entrant lock serialises transactions against each other and against
  direct writes, so a transaction always sees a stable snapshot
- Transaction writes are buffered and applied only when the callback returns
"""

import copy
import threading
from typing import Any, Dict, List, Optional, Tuple

from mentormatch.core.exceptions import NotFoundError
from mentormatch.db.store import DocumentStore, Transaction, validate_filters

_DELETED = object()


def _matches(doc: Dict[str, Any], filters) -> bool:
    for field, op, value in filters:
        actual = doc.get(field)
        if op == "==":
            ok = actual == value
        elif op == "!=":
            ok = actual != value
        elif op == "in":
            ok = actual in value
        elif op == "not-in":
            ok = actual not in value
        elif actual is None:
            ok = False
        elif op == "<":
            ok = actual < value
        elif op == "<=":
            ok = actual <= value
        elif op == ">":
            ok = actual > value
        else:
            ok = actual >= value
        if not ok:
            return False
    return True


def _sorted(docs: List[Dict[str, Any]], order_by) -> List[Dict[str, Any]]:
    # Stable sorts applied last-key-first give a multi-key ordering
    for field, direction in reversed(list(order_by)):
        present = [d for d in docs if d.get(field) is not None]
        missing = [d for d in docs if d.get(field) is None]
        present.sort(key=lambda d: d[field], reverse=direction < 0)
        # Mongo puts missing/null first ascending, last descending
        docs = missing + present if direction > 0 else present + missing
    return docs


def _run_query(docs: List[Dict[str, Any]], filters, order_by, limit) -> List[Dict[str, Any]]:
    filters = validate_filters(filters)
    results = [d for d in docs if _matches(d, filters)]
    if order_by:
        results = _sorted(results, order_by)
    if limit:
        results = results[:limit]
    return [copy.deepcopy(d) for d in results]


class InMemoryDocumentStore(DocumentStore):

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def get(self, collection, doc_id):
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def query(self, collection, filters=None, order_by=None, limit=None):
        with self._lock:
            return _run_query(list(self._collection(collection).values()), filters, order_by, limit)

    def set(self, collection, doc_id, data):
        with self._lock:
            doc = copy.deepcopy(data)
            doc["id"] = doc_id
            self._collection(collection)[doc_id] = doc

    def update(self, collection, doc_id, data):
        with self._lock:
            existing = self._collection(collection).get(doc_id)
            if existing is None:
                raise NotFoundError(collection, doc_id)
            existing.update(copy.deepcopy({k: v for k, v in data.items() if k != "id"}))

    def delete(self, collection, doc_id):
        with self._lock:
            self._collection(collection).pop(doc_id, None)

    def run_transaction(self, fn):
        with self._lock:
            tx = InMemoryTransaction(self)
            result = fn(tx)
            tx.commit()
            return result

    def count(self, collection: str) -> int:
        """Number of documents in a collection (test helper)."""
        with self._lock:
            return len(self._collection(collection))

    def clear(self) -> None:
        with self._lock:
            self._collections.clear()


class InMemoryTransaction(Transaction):
    """Buffers writes; reads see the transaction's own writes first."""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store
        self._writes: Dict[Tuple[str, str], Any] = {}

    def _current(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        key = (collection, doc_id)
        if key in self._writes:
            staged = self._writes[key]
            return None if staged is _DELETED else staged
        return self._store._collection(collection).get(doc_id)

    def get(self, collection, doc_id):
        doc = self._current(collection, doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def query(self, collection, filters=None, order_by=None, limit=None):
        merged = dict(self._store._collection(collection))
        for (coll, doc_id), staged in self._writes.items():
            if coll != collection:
                continue
            if staged is _DELETED:
                merged.pop(doc_id, None)
            else:
                merged[doc_id] = staged
        return _run_query(list(merged.values()), filters, order_by, limit)

    def set(self, collection, doc_id, data):
        doc = copy.deepcopy(data)
        doc["id"] = doc_id
        self._writes[(collection, doc_id)] = doc

    def update(self, collection, doc_id, data):
        existing = self._current(collection, doc_id)
        if existing is None:
            raise NotFoundError(collection, doc_id)
        doc = copy.deepcopy(existing)
        doc.update(copy.deepcopy({k: v for k, v in data.items() if k != "id"}))
        self._writes[(collection, doc_id)] = doc

    def delete(self, collection, doc_id):
        self._writes[(collection, doc_id)] = _DELETED

    def commit(self) -> None:
        for (collection, doc_id), staged in self._writes.items():
            target = self._store._collection(collection)
            if staged is _DELETED:
                target.pop(doc_id, None)
            else:
                target[doc_id] = staged
        self._writes.clear()
