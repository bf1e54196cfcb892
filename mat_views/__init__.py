"""Lifecycle orchestration for PostgreSQL materialized views."""

__version__ = "0.1.0"
