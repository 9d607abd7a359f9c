"""Alert delivery over Slack, email and PagerDuty."""
