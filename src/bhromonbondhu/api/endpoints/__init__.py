# src/bhromonbondhu/api/endpoints/__init__.py
"""API endpoint modules."""

from .messages import router as messages_router

__all__ = ["messages_router"]
