#!/usr/bin/env python3
"""
Demo Data Seed Script

Creates a small set of students, supervisors and an admin, then prints a
bearer token for each so the API can be exercised from /docs.

Usage: python scripts/seed_demo_data.py [--reset]
"""
import sys
sys.path.insert(0, '.')

from mentormatch.core.auth import create_caller_token
from mentormatch.db.mongodb import COLLECTIONS, get_mongo_db, init_mongo_indexes
from mentormatch.db.store import get_document_store
from mentormatch.schemas.schemas import UserRole
from mentormatch.services.repositories import (
    AdminRepository,
    StudentRepository,
    SupervisorRepository,
    new_admin_doc,
    new_student_doc,
    new_supervisor_doc,
)

STUDENTS = [
    ("Noa", "Levi", "noa.levi@example.com", "Computer Science", ["python", "ml"]),
    ("Amir", "Cohen", "amir.cohen@example.com", "Computer Science", ["react", "node"]),
    ("Dana", "Mizrahi", "dana.mizrahi@example.com", "Software Engineering", ["java", "spring"]),
    ("Yossi", "Peretz", "yossi.peretz@example.com", "Software Engineering", ["go", "kubernetes"]),
]

SUPERVISORS = [
    ("Ruth", "Ben-David", "ruth.bendavid@example.com", "Computer Science", 3),
    ("Eitan", "Friedman", "eitan.friedman@example.com", "Software Engineering", 2),
    ("Maya", "Shapiro", "maya.shapiro@example.com", "Computer Science", 1),
]


def reset():
    db = get_mongo_db()
    for name in COLLECTIONS.values():
        db[name].delete_many({})
    print("    🗑️  Collections cleared")


def main():
    print("=" * 50)
    print("MENTORMATCH - DEMO DATA SEED")
    print("=" * 50)

    if "--reset" in sys.argv:
        print("\n[0] Resetting collections...")
        reset()

    init_mongo_indexes()
    store = get_document_store()
    tokens = []

    print("\n[1] Creating students...")
    students = StudentRepository(store)
    for i, (first, last, email, dept, skills) in enumerate(STUDENTS, start=1):
        student_id = students.create(new_student_doc(
            first, last, email,
            student_number=f"2026{i:04d}", department=dept, skills=skills,
        ))
        tokens.append((f"{first} {last} (student)", create_caller_token(student_id, UserRole.student, email)))
        print(f"    ✅ {first} {last}: {student_id}")

    print("\n[2] Creating supervisors...")
    supervisors = SupervisorRepository(store)
    for first, last, email, dept, capacity in SUPERVISORS:
        supervisor_id = supervisors.create(new_supervisor_doc(
            first, last, email, max_capacity=capacity, department=dept, title="Dr.",
        ))
        tokens.append((f"{first} {last} (supervisor)", create_caller_token(supervisor_id, UserRole.supervisor, email)))
        print(f"    ✅ {first} {last}: {supervisor_id} (capacity {capacity})")

    print("\n[3] Creating admin...")
    admin_id = AdminRepository(store).create(new_admin_doc("Admin", "User", "admin@example.com"))
    tokens.append(("Admin User (admin)", create_caller_token(admin_id, UserRole.admin, "admin@example.com")))
    print(f"    ✅ Admin: {admin_id}")

    print("\n[4] Bearer tokens:")
    for label, token in tokens:
        print(f"\n    {label}\n    {token}")

    print("\n" + "=" * 50)
    print("Seed complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
