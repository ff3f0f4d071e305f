"""Explicit per-request identity of the acting user."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionContext:
    """Who is acting. Passed to every operation that needs an owner."""

    user_id: str
    email: str = ""
    display_name: str | None = None

    def owns(self, owner_id: str) -> bool:
        return bool(self.user_id) and self.user_id == owner_id
