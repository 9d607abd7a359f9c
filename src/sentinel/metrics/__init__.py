"""Metric aggregation, saturation monitoring and survival tracking."""
