"""Utility helpers for Sentinel."""
