"""Database models for Sentinel."""
