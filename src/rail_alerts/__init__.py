"""
Rail Alerts - National Rail incident notifications for Slack.

Polls the National Rail incident feed for monitored stations and posts
new incidents and "good service" updates to Slack channels and users.
"""

__version__ = "1.0.0"
