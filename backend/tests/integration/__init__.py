"""
Integration Tests

Run the services and routers against a real SQLAlchemy session backed by
an in-memory SQLite database (aiosqlite), one fresh database per test.

These tests verify that all components work together correctly.
"""
