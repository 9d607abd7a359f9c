"""Heuristic AI-authorship detection and risk classification."""
