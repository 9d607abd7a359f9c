"""Threshold alert rules and their evaluation."""
