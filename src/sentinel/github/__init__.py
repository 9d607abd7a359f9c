"""GitHub REST API access for webhook processing and commit analysis."""
