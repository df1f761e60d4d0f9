"""Domain models (value objects and result records)."""
