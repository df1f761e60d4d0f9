"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like file paths, employee
identifiers and Workday IDs, ensuring consistency and type safety.
"""

from typing import NewType, Literal, Tuple

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
FilePath = NewType("FilePath", str)            # Path to a document on disk
EmployeeId = NewType("EmployeeId", str)        # Business identifier parsed from a filename
WorkerWid = NewType("WorkerWid", str)          # Workday ID of a resolved worker
CategoryWid = NewType("CategoryWid", str)      # Workday ID of a document category
AccessToken = NewType("AccessToken", str)      # Short-lived OAuth bearer token

# === Environment Context ===
# An environment name doubles as the scope credentials are cached under.
EnvironmentName = Literal["production", "sandbox", "sandbox_preview"]
ENVIRONMENT_NAMES: Tuple[str, ...] = ("sandbox", "sandbox_preview", "production")

DEFAULT_MIME_TYPE = "application/pdf"
