"""API Resilience Implementations.

Contains services for retrying transient failures with exponential
backoff and for failing fast through per-operation circuit breakers.
Bounded Context: API Resilience
"""
