"""
Pydantic schema definitions for API payloads.

Each domain (users, bookings, reviews, catalog) defines its own
Pydantic models for request and response bodies.  Schemas are separated
from the SQLite rows to decouple API representation from persistence.
All models serialise with camelCase field names (see ``common.ApiModel``).
"""
