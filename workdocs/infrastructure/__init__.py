"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (Workday APIs, the local file
system, the terminal) by implementing the interfaces defined in the domain
layer. Also includes the resilience and caching services.
"""
