"""OAuth credential management for Workday environments."""
