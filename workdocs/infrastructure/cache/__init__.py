"""Caching Infrastructure.

In-memory TTL caches used during an upload run.
"""
