"""GitHub webhook verification, routing and event recording."""
