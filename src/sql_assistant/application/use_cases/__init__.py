"""Use cases, invoked by any transport layer."""
