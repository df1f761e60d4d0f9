"""Terminal user interface (rich) adapters."""
