# backend/competencydb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- User directory (name, email, department, status)
- Roles and their per-module list/add/edit/delete capabilities
- Resolving the authenticated caller and enforcing permissions
"""
