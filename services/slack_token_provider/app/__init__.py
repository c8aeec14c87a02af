"""Slack OAuth token rotation job."""
