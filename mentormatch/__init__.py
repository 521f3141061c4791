"""
MentorMatch
Supervision matching for final-year projects.

Architecture:
- Application workflow: students apply to supervisors, supervisors decide
- Capacity ledger: approved applications consume supervisor slots
- Partnerships: students pair up, supervisors co-supervise projects
- MongoDB: every entity, with multi-document transactions
"""

__version__ = "1.0.0"
