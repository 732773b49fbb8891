"""AWS Cost Notifier: daily AWS spend summaries delivered to Slack."""

__version__ = "0.1.0"
