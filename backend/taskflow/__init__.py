"""
TaskFlow Backend - Application Package
=======================================

What: Task-tracking HTTP API (create, list, update, toggle, delete tasks).
Who:  Imported by uvicorn (taskflow.main:app), Alembic and pytest.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← status codes, request parsing
    ├─────────────────────────────────────┤
    │        Services (Task Store)        │  ← validation, query composition
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
