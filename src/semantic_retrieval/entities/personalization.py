"""Caller-supplied personalization state."""

from dataclasses import dataclass, field

from semantic_retrieval.entities.document import ContentType


@dataclass(frozen=True)
class PersonalizationContext:
    """Per-user preferences and history, read-only input to scoring.

    Attributes:
        user_id: The user the context belongs to
        user_preferences: Document id -> preference weight
        recent_interactions: Recently touched document ids, newest first
        preferred_content_types: Content types the user favours
        preferred_tags: Tags the user favours
        interaction_history: Document id -> interaction weight (0-1)
    """

    user_id: str
    user_preferences: dict[str, float] = field(default_factory=dict)
    recent_interactions: tuple[str, ...] = ()
    preferred_content_types: tuple[ContentType, ...] = ()
    preferred_tags: tuple[str, ...] = ()
    interaction_history: dict[str, float] = field(default_factory=dict)

    def fingerprint(self) -> dict:
        """Stable, JSON-friendly view used for cache keys."""
        return {
            "user_id": self.user_id,
            "user_preferences": sorted(self.user_preferences.items()),
            "recent_interactions": list(self.recent_interactions),
            "preferred_content_types": sorted(ct.value for ct in self.preferred_content_types),
            "preferred_tags": sorted(self.preferred_tags),
            "interaction_history": sorted(self.interaction_history.items()),
        }
