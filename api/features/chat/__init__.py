"""Chat feature package: DTOs, controller, router, repository and service.

Stores conversations and messages in PostgreSQL and asks an OpenAI-compatible
completion provider for replies over a bounded window of recent turns.
"""
