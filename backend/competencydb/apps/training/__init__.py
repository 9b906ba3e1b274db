# backend/competencydb/apps/training/__init__.py
"""
Training app

Responsible for:
- Training requests and their status lifecycle
- Training batches, rosters and the capacity ledger
- Session attendance (sequence gated) and homework records
"""
