"""Explicit credential holder handed to the API client."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UserSession:
    """Bearer token plus the id of the user it was issued for."""

    token: str
    user_id: int

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}
