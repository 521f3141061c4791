"""
Database module - MongoDB connection and the document store abstraction.
"""
from mentormatch.db.mongodb import get_mongo_db, check_mongo_connection, COLLECTIONS
from mentormatch.db.store import DocumentStore, Transaction, get_document_store

__all__ = [
    "get_mongo_db",
    "check_mongo_connection",
    "COLLECTIONS",
    "DocumentStore",
    "Transaction",
    "get_document_store",
]
