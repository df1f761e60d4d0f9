"""WorkDocs CLI: mass upload of worker documents to Workday."""

__version__ = "1.0.0"
