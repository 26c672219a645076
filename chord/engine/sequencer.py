"""
chord.engine.sequencer — Channel Position Arithmetic
=====================================================

Channels are ordered per **scope** = ``(guild_id, channel_type)``.  Inside
a scope the positions are always exactly ``{0, 1, …, n-1}``; a Text scope
and a Voice scope in the same guild are independent and reuse numbers.

Everything here is a pure function over a snapshot of one scope.  The
service layer loads the whole scope (row-locked), calls
:func:`compute_shift`, and writes the returned positions back in one
transaction.  Nothing in this module touches the database.

Operations::

    Append(channel_id)            → new channel at max + 1 (0 if empty)
    Move(channel_id, position)    → siblings between old and new shift by 1
    Remove(channel_id)            → siblings after the gap shift down by 1

``compute_shift`` returns ``{channel_id: new_position}`` for every channel
whose position is set or changes; untouched siblings are omitted.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


class SequenceError(ValueError):
    """The snapshot or the requested operation would break contiguity."""


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Append:
    channel_id: str


@dataclass(frozen=True, slots=True)
class Move:
    channel_id: str
    position: int


@dataclass(frozen=True, slots=True)
class Remove:
    channel_id: str


ScopeOp = Append | Move | Remove


# ---------------------------------------------------------------------------
# Invariant helpers
# ---------------------------------------------------------------------------
def is_contiguous(positions: Iterable[int]) -> bool:
    """True if *positions* is exactly ``{0, …, n-1}`` with no duplicates."""
    values = sorted(positions)
    return values == list(range(len(values)))


def check_contiguous(siblings: Mapping[str, int]) -> None:
    if not is_contiguous(siblings.values()):
        raise SequenceError(
            f"Scope positions are not contiguous: {sorted(siblings.values())}"
        )


def next_position(siblings: Mapping[str, int]) -> int:
    """Append slot: max + 1, or 0 for an empty scope."""
    if not siblings:
        return 0
    return max(siblings.values()) + 1


# ---------------------------------------------------------------------------
# The shift itself
# ---------------------------------------------------------------------------
def compute_shift(siblings: Mapping[str, int], op: ScopeOp) -> dict[str, int]:
    """Compute the position changes that *op* causes in one scope.

    Parameters
    ----------
    siblings:
        ``{channel_id: position}`` for **every** channel currently in the
        scope (for ``Append`` the new channel is not in it yet).
    op:
        The structural change to apply.

    Raises
    ------
    SequenceError
        If the snapshot is not contiguous, the channel is missing from (or
        already present in) the scope, or a move target is out of range.
    """
    check_contiguous(siblings)

    if isinstance(op, Append):
        if op.channel_id in siblings:
            raise SequenceError(f"Channel {op.channel_id} is already in this scope")
        return {op.channel_id: next_position(siblings)}

    if op.channel_id not in siblings:
        raise SequenceError(f"Channel {op.channel_id} is not in this scope")
    old = siblings[op.channel_id]

    if isinstance(op, Move):
        new = op.position
        if not 0 <= new < len(siblings):
            raise SequenceError(
                f"Position {new} is outside 0..{len(siblings) - 1}"
            )
        if new == old:
            return {}

        changes: dict[str, int] = {}
        for channel_id, pos in siblings.items():
            if channel_id == op.channel_id:
                continue
            if new < old and new <= pos < old:
                changes[channel_id] = pos + 1
            elif new > old and old < pos <= new:
                changes[channel_id] = pos - 1
        changes[op.channel_id] = new
        return changes

    if isinstance(op, Remove):
        return {
            channel_id: pos - 1
            for channel_id, pos in siblings.items()
            if pos > old
        }

    raise TypeError(f"Unsupported scope operation: {op!r}")


def apply_shift(siblings: Mapping[str, int], op: ScopeOp) -> dict[str, int]:
    """Return the full post-operation scope (snapshot + shift), for tests and checks."""
    result = dict(siblings)
    if isinstance(op, Remove):
        result.pop(op.channel_id, None)
    result.update(compute_shift(siblings, op))
    return result


def resequence(ordered_ids: Iterable[str]) -> dict[str, int]:
    """Number *ordered_ids* 0..n-1 in the given order (repair of legacy gaps)."""
    return {channel_id: index for index, channel_id in enumerate(ordered_ids)}
