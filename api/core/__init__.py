"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature uses (DB pool handle,
settings, logging, error types, application context). Resource-specific SQL
and business logic live in `resources/`.
"""
