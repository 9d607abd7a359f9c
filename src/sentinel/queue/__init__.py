"""Durable database-backed job queues, workers and periodic triggers."""
