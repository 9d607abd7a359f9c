"""
Sentinel - AI code attribution and alerting for engineering teams.
"""

__version__ = "0.1.0"
