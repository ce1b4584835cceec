"""
Suggestion operations.

Every operation takes the acting identity as an explicit argument; nothing
here reads request state. Storage failures surface as StorageError and are
mapped to responses by the plugin routes.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from datasette_suggestions.access import (
    MutateDecision,
    ViewDecision,
    can_mutate,
    can_view,
    claim_ownership,
    list_public,
)
from datasette_suggestions.config import EDITABLE_FIELDS
from datasette_suggestions.store import Suggestion, SuggestionStore, Visibility

logger = logging.getLogger("datasette-suggestions")

# Form keys that belong to the transport, not the suggestion
TRANSPORT_FIELDS = frozenset({"csrftoken", "_method"})

TITLE_MAX_LENGTH = 200


class SuggestionValidationError(ValueError):
    """Submitted suggestion fields failed validation."""

    def __init__(self, message: str, suggestion: Suggestion | None = None):
        super().__init__(message)
        self.suggestion = suggestion


@dataclass
class SuggestionInput:
    """The fields a user may submit for a suggestion. Anything else is ignored."""

    title: str | None = None
    body: str | None = None
    status: str | None = None

    @classmethod
    def from_form(cls, formdata: dict[str, Any]) -> "SuggestionInput":
        values = {}
        for key, value in formdata.items():
            if key in TRANSPORT_FIELDS:
                continue
            if key not in EDITABLE_FIELDS:
                logger.debug(f"Ignoring unknown suggestion field: {key}")
                continue
            values[key] = str(value).strip() if value is not None else None
        return cls(**values)

    def _validate_status(self) -> None:
        if self.status is not None and self.status not in {v.value for v in Visibility}:
            raise SuggestionValidationError(
                f"Invalid status. Must be one of: {[v.value for v in Visibility]}"
            )

    def _validate_title(self) -> None:
        if not self.title:
            raise SuggestionValidationError("Please enter a title for your suggestion.")
        if len(self.title) > TITLE_MAX_LENGTH:
            raise SuggestionValidationError(
                f"Title must be {TITLE_MAX_LENGTH} characters or fewer."
            )

    def for_create(self) -> dict[str, str]:
        """Validated fields for a new suggestion, with defaults filled in."""
        self._validate_title()
        self._validate_status()
        return {
            "title": self.title,
            "body": self.body or "",
            "status": self.status or Visibility.PUBLIC.value,
        }

    def for_update(self, editable_fields: tuple[str, ...] = EDITABLE_FIELDS) -> dict[str, str]:
        """Validated changes, limited to the supplied fields the config lets owners edit."""
        changes = {
            name: getattr(self, name)
            for name in editable_fields
            if getattr(self, name) is not None
        }
        if "title" in changes:
            self._validate_title()
        if "status" in changes:
            self._validate_status()
        if "body" in changes:
            changes["body"] = changes["body"] or ""
        return changes


class ResultKind(str, Enum):
    """What the caller should do with an operation result."""

    SHOW = "show"
    DONE = "done"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


@dataclass
class OperationResult:
    kind: ResultKind
    suggestion: Suggestion | None = None


class SuggestionService:
    """Create, read, update and delete suggestions on behalf of an actor."""

    def __init__(self, store: SuggestionStore, editable_fields: tuple[str, ...] = EDITABLE_FIELDS):
        self.store = store
        self.editable_fields = editable_fields

    def create(
        self,
        payload: dict[str, Any],
        actor_id: str,
        actor_display: str | None = None,
    ) -> Suggestion:
        """
        Create a suggestion owned by actor_id.

        Any owner supplied in the payload is discarded.
        """
        claimed = claim_ownership(payload, actor_id)
        fields = SuggestionInput.from_form(payload).for_create()
        suggestion = self.store.create(
            owner_id=claimed["owner_id"],
            owner_display=actor_display,
            **fields,
        )
        logger.info(f"Suggestion {suggestion.suggestion_id} created by {actor_id}")
        return suggestion

    def list_public(self, owner_id: str | None = None) -> list[Suggestion]:
        """Public suggestions, newest first, optionally for one owner."""
        rows = self.store.find(status=Visibility.PUBLIC.value, owner_id=owner_id)
        return list_public(rows, owner_id=owner_id)

    def list_own(self, actor_id: str) -> list[Suggestion]:
        """Every suggestion owned by actor_id, public and private, newest first."""
        return self.store.find(owner_id=actor_id)

    def view(self, suggestion_id: str, actor_id: str) -> OperationResult:
        suggestion = self.store.get(suggestion_id)
        decision = can_view(suggestion, actor_id)

        if decision == ViewDecision.SHOW:
            return OperationResult(ResultKind.SHOW, suggestion)
        if decision == ViewDecision.DENY:
            logger.debug(f"Private suggestion {suggestion_id} hidden from {actor_id}")
        return OperationResult(ResultKind.NOT_FOUND)

    def edit(self, suggestion_id: str, actor_id: str) -> OperationResult:
        """Load a suggestion for its edit form."""
        suggestion = self.store.get(suggestion_id)
        decision = can_mutate(suggestion, actor_id)

        if decision == MutateDecision.ALLOW:
            return OperationResult(ResultKind.SHOW, suggestion)
        if decision == MutateDecision.REDIRECT:
            return OperationResult(ResultKind.REDIRECT)
        return OperationResult(ResultKind.NOT_FOUND)

    def update(
        self,
        suggestion_id: str,
        payload: dict[str, Any],
        actor_id: str,
    ) -> OperationResult:
        """
        Apply payload to a suggestion owned by actor_id.

        Non-owners get REDIRECT and the payload is dropped without validation.
        Raises SuggestionValidationError if the owner's payload is invalid.
        """
        suggestion = self.store.get(suggestion_id)
        decision = can_mutate(suggestion, actor_id)

        if decision == MutateDecision.NOT_FOUND:
            return OperationResult(ResultKind.NOT_FOUND)
        if decision == MutateDecision.REDIRECT:
            logger.info(f"Update of {suggestion_id} by non-owner {actor_id} ignored")
            return OperationResult(ResultKind.REDIRECT)

        try:
            changes = SuggestionInput.from_form(payload).for_update(self.editable_fields)
        except SuggestionValidationError as e:
            raise SuggestionValidationError(str(e), suggestion=suggestion) from e

        updated = self.store.update(suggestion_id, **changes)
        if updated is None:
            # Deleted between the read and the write
            return OperationResult(ResultKind.NOT_FOUND)

        logger.info(f"Suggestion {suggestion_id} updated by {actor_id}")
        return OperationResult(ResultKind.DONE, updated)

    def delete(self, suggestion_id: str, actor_id: str) -> OperationResult:
        suggestion = self.store.get(suggestion_id)
        decision = can_mutate(suggestion, actor_id)

        if decision == MutateDecision.NOT_FOUND:
            return OperationResult(ResultKind.NOT_FOUND)
        if decision == MutateDecision.REDIRECT:
            logger.info(f"Delete of {suggestion_id} by non-owner {actor_id} ignored")
            return OperationResult(ResultKind.REDIRECT)

        self.store.delete(suggestion_id)
        logger.info(f"Suggestion {suggestion_id} deleted by {actor_id}")
        return OperationResult(ResultKind.DONE, suggestion)
