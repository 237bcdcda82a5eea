"""Bhromonbondhu messaging: conversation store, HTTP API and client."""

__version__ = "0.1.0"
