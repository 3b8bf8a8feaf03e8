"""Application layer: use cases, the agent and its tool."""
