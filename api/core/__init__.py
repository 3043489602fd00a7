"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that features use
(settings, DB pool, object store, logging). Keep feature-specific SQL and
business logic in the corresponding feature package (e.g. `books/`).
"""
