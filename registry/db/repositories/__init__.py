"""
Per-domain repository modules for database access.

Fact tables (residents, households, memberships, migration info) and the
derived tables written by the recomputation engine.
"""
