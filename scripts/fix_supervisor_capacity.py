#!/usr/bin/env python3
"""
Supervisor Capacity Repair Script

Recounts every supervisor's current_capacity from approved applications
(a linked partner pair counts once) and fixes stored counters that drifted.

Usage: python scripts/fix_supervisor_capacity.py [supervisor_id]
"""
import sys
sys.path.insert(0, '.')

from mentormatch.db.store import get_document_store
from mentormatch.services.admin_service import AdminService


def main():
    supervisor_id = sys.argv[1] if len(sys.argv) > 1 else None
    print("=" * 50)
    print("MENTORMATCH - SUPERVISOR CAPACITY REPAIR")
    print("=" * 50)

    result = AdminService(get_document_store()).reconcile_all_capacity(supervisor_id)
    if not result.success:
        print(f"\n    ❌ {result.error}")
        sys.exit(1)

    report = result.data
    print(f"\n    Supervisors checked: {report['supervisors_checked']}")
    print(f"    Supervisors corrected: {report['supervisors_corrected']}")
    for c in report["corrections"]:
        line = f"    🔧 {c['supervisor_id']}: {c['old_capacity']} -> {c['new_capacity']}/{c['max_capacity']}"
        if c["overflow"]:
            line += f"  ⚠️  {c['approved_count']} approved, {c['overflow']} over max"
        print(line)

    print("\n" + "=" * 50)
    print("Capacity repair complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
