# backend/settings/__init__.py
"""
Settings package. Nothing is loaded here; select a module explicitly:
- backend.settings.dev   (local machine, tests)
- backend.settings.prod  (store server / hosted Postgres)
"""
