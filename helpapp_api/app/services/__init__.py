"""
Service layer abstraction.

Each service encapsulates business logic for a domain and receives the
process-wide ``Database`` in its constructor, so API handlers never
touch SQL directly.
"""
