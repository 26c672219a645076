"""
chord.errors — Error Taxonomy
==============================

Every service raises one of four kinds, always *before* anything is
committed.  Callers (the API layer, bots, scripts) decide how to present
them; :mod:`chord.api.main` maps them to HTTP status codes.

==================  =====================================================
NotFoundError       guild / role / channel absent
ForbiddenError      missing capability or hierarchy violation
ConflictError       duplicate name, system-role mutation, manual Owner
                    assignment, target not a member
ValidationError     malformed input (empty name, bad color, bad position)
==================  =====================================================
"""

from __future__ import annotations


class ChordError(Exception):
    """Base class for all domain errors raised by Chord services."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ChordError):
    default_message = "Not found"


class ForbiddenError(ChordError):
    default_message = "You don't have permission to do that"


class ConflictError(ChordError):
    default_message = "Conflicting state"


class ValidationError(ChordError):
    default_message = "Invalid input"
