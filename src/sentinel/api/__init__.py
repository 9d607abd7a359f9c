"""HTTP API for Sentinel."""
