"""
MongoDB Connection Utility

MongoDB stores every MentorMatch entity:
- students, supervisors, admins: user profiles
- applications: supervision applications and their workflow status
- partnership_requests: student-to-student pairing requests
- supervisor_partnership_requests: co-supervision requests scoped to a project
- projects: approved supervision projects
- capacity_changes: audit trail of admin capacity edits

Multi-document transactions need a replica set; a single-node replica set
is enough for development.
"""
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.collection import Collection

from mentormatch.core.config import get_settings
from mentormatch.core.logging_config import logger

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri, tz_aware=True)
    return _client


def get_mongo_db() -> Database:
    """Get the mentormatch database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection by name (see COLLECTIONS)."""
    db = get_mongo_db()
    return db[name]


def check_mongo_connection() -> bool:
    """
    Check if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning(f"MongoDB connection failed: {e}")
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "students": "students",
    "supervisors": "supervisors",
    "admins": "admins",
    "applications": "applications",
    "partnership_requests": "partnership_requests",
    "supervisor_partnership_requests": "supervisor_partnership_requests",
    "projects": "projects",
    "capacity_changes": "capacity_changes",
}


def init_mongo_indexes():
    """
    Create indexes for lookups and for the pending-request uniqueness rules.
    Call this once during app startup.
    """
    db = get_mongo_db()

    db[COLLECTIONS["applications"]].create_index([("student_id", ASCENDING), ("status", ASCENDING)])
    db[COLLECTIONS["applications"]].create_index([("supervisor_id", ASCENDING), ("status", ASCENDING)])
    db[COLLECTIONS["applications"]].create_index("linked_application_id")

    pending_only = {"status": "pending"}

    # At most one pending request per ordered (requester, target) pair
    requests = db[COLLECTIONS["partnership_requests"]]
    requests.create_index("target_id")
    requests.create_index(
        [("requester_id", ASCENDING), ("target_id", ASCENDING)],
        unique=True,
        partialFilterExpression=pending_only,
        name="uniq_pending_student_request",
    )

    supervisor_requests = db[COLLECTIONS["supervisor_partnership_requests"]]
    supervisor_requests.create_index("target_id")
    supervisor_requests.create_index("project_id")
    supervisor_requests.create_index(
        [("requester_id", ASCENDING), ("target_id", ASCENDING), ("project_id", ASCENDING)],
        unique=True,
        partialFilterExpression=pending_only,
        name="uniq_pending_supervisor_request",
    )

    db[COLLECTIONS["projects"]].create_index("supervisor_id")
    db[COLLECTIONS["projects"]].create_index("project_code", unique=True)
    db[COLLECTIONS["capacity_changes"]].create_index([("supervisor_id", ASCENDING), ("timestamp", ASCENDING)])
    db[COLLECTIONS["students"]].create_index("email")
    db[COLLECTIONS["supervisors"]].create_index("email")

    logger.info("MongoDB indexes created successfully")
