"""Agent wiring and the database tool exposed to it."""
