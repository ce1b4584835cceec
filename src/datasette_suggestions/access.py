"""
Access rules for suggestions.

Visibility:
- Public suggestions can be seen by any authenticated actor
- Private suggestions can only be seen by their owner

Mutation (edit, update, delete) is reserved for the owner. Everyone else is
sent back to the listing without an error.
"""

from collections.abc import Iterable
from enum import Enum

from datasette_suggestions.store import Suggestion, Visibility


class ViewDecision(str, Enum):
    """Result of asking whether an actor may view a suggestion."""

    SHOW = "show"
    DENY = "deny"
    NOT_FOUND = "not_found"


class MutateDecision(str, Enum):
    """Result of asking whether an actor may change a suggestion."""

    ALLOW = "allow"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


def is_owner(suggestion: Suggestion, actor_id: str) -> bool:
    return suggestion.owner_id == actor_id


def can_view(suggestion: Suggestion | None, actor_id: str) -> ViewDecision:
    """Decide whether actor_id may view the suggestion."""
    if suggestion is None:
        return ViewDecision.NOT_FOUND
    if suggestion.status == Visibility.PUBLIC.value:
        return ViewDecision.SHOW
    if is_owner(suggestion, actor_id):
        return ViewDecision.SHOW
    return ViewDecision.DENY


def can_mutate(suggestion: Suggestion | None, actor_id: str) -> MutateDecision:
    """Decide whether actor_id may edit, update or delete the suggestion."""
    if suggestion is None:
        return MutateDecision.NOT_FOUND
    if is_owner(suggestion, actor_id):
        return MutateDecision.ALLOW
    return MutateDecision.REDIRECT


def list_public(
    suggestions: Iterable[Suggestion],
    owner_id: str | None = None,
) -> list[Suggestion]:
    """
    Public suggestions, newest first.

    If owner_id is given, only that owner's public suggestions are kept.
    The sort is stable, so suggestions sharing a timestamp keep their input order.
    """
    visible = [
        s
        for s in suggestions
        if s.status == Visibility.PUBLIC.value and (owner_id is None or s.owner_id == owner_id)
    ]
    return sorted(visible, key=lambda s: s.created_at, reverse=True)


def claim_ownership(payload: dict, actor_id: str) -> dict:
    """Return a copy of payload owned by actor_id, whatever owner it claimed."""
    claimed = {k: v for k, v in payload.items() if k not in ("owner", "owner_id", "user")}
    claimed["owner_id"] = actor_id
    return claimed
