"""
Attivita backend package.

This package provides a FastAPI application exposing bearer-token
authentication and owner-scoped CRUD over "attivita" (task) records,
backed by a SQLAlchemy database or an in-memory store for development.
"""
