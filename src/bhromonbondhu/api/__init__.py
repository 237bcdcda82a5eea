# src/bhromonbondhu/api/__init__.py
"""HTTP API for the messaging service."""

from .endpoints import messages_router

__all__ = ["messages_router"]
