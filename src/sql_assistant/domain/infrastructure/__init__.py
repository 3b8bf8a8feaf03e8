"""Database gateway: dialects, session, lifecycle, introspection and execution."""
