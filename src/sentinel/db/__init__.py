"""Database layer for Sentinel."""
