"""Domain Layer: value objects, entities, errors and ports.

Nothing in here performs I/O; infrastructure adapters implement the
interfaces and the core services depend only on them.
"""
