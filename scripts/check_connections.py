#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify MongoDB is reachable and supports transactions.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from mentormatch.core.config import get_settings
from mentormatch.db.mongodb import check_mongo_connection, get_mongo_client


def main():
    settings = get_settings()
    print("=" * 50)
    print("MENTORMATCH - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Settings...")
    print(f"    Store backend: {settings.store_backend}")
    print(f"    Environment: {settings.environment}")
    print(f"    Capacity limits: admin {settings.admin_capacity_limit}, supervisor {settings.supervisor_capacity_limit}")

    print("\n[2] Checking MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if not check_mongo_connection():
        print("    ❌ MongoDB: FAILED")
        sys.exit(1)
    print("    ✅ MongoDB: CONNECTED")

    print("\n[3] Checking transaction support...")
    hello = get_mongo_client().admin.command("hello")
    if hello.get("setName") or hello.get("msg") == "isdbgrid":
        print(f"    ✅ Replica set: {hello.get('setName', 'mongos')}")
    else:
        print("    ❌ Standalone server: multi-document transactions are not available")
        print("       Start mongod with --replSet rs0 and run rs.initiate()")
        sys.exit(1)

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
