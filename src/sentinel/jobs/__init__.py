"""Scheduled job bodies run from the scheduled-jobs queue."""
