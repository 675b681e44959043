"""Core services and cross-cutting concerns.

Submodules are imported explicitly (``clinic_core.core.errors``,
``clinic_core.core.database``, ...) so that configuration can load
constants from here without pulling in the database engine.
"""
