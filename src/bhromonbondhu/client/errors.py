"""Errors raised by the messaging client.

Every failure the client can meet maps to one of these so the inbox can
store a displayable message and offer a manual retry.
"""
from __future__ import annotations


class MessagingClientError(RuntimeError):
    """Base exception for messaging client failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(MessagingClientError):
    """The bearer credential was missing, invalid or expired."""


class NotFoundError(MessagingClientError):
    """The conversation does not exist or the viewer is not part of it."""


class ValidationError(MessagingClientError):
    """The request was rejected as malformed, locally or by the server."""


class NetworkError(MessagingClientError):
    """The request never produced an HTTP response."""
