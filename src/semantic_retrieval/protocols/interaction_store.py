"""Interaction store protocol.

Supplies per-user interaction history for collaborative filtering.
The core only reads from it.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class InteractionStore(Protocol):
    """Protocol for user interaction history backends."""

    def get_interactions(self, user_id: str) -> dict[str, float]:
        """Return document id -> interaction weight for a user.

        Unknown users yield an empty mapping.
        """
        ...

    def list_users(self) -> list[str]:
        """Return every user with at least one interaction."""
        ...
