"""Snapshot Cache Implementation.

Provides the stale snapshot cache and the key-value stores it persists to
(in-memory and diskcache-backed).
Bounded Context: Cache Management
"""
