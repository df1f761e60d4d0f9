"""Workday SOAP API adapters.

HTTP transport helpers, request templates and the API client.
"""
