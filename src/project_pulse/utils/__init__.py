"""Shared errors, failure classification and constants."""
