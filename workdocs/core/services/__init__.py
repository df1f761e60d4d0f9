"""Application services (upload orchestration, reporting)."""
