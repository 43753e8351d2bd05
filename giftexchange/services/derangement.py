"""
Bulk draw planning.

Sattolo's shuffle turns a list into one uniformly random cycle, so giving
each element its successor on that cycle never maps anybody to themselves
and needs no reject-and-retry loop.
"""
from __future__ import annotations

import random
from typing import Iterable, MutableSequence, TypeVar

from ..errors import InsufficientParticipantsError
from .candidates import AssignmentRow

T = TypeVar("T")


def sattolo_shuffle(items: MutableSequence[T], rng: random.Random | None = None) -> None:
    """Shuffle ``items`` in place into a single cycle."""
    rng = rng or random.SystemRandom()
    for i in range(len(items) - 1, 0, -1):
        j = rng.randrange(i)  # strictly below i
        items[i], items[j] = items[j], items[i]


def cycle_mapping(items: list[T], rng: random.Random | None = None) -> dict[T, T]:
    """
    Uniformly random single-cycle permutation of ``items`` as a mapping.

    Each item maps to the item Sattolo moved into its slot, so following
    the mapping from any item visits all of them before returning.
    """
    shuffled = list(items)
    sattolo_shuffle(shuffled, rng)
    return dict(zip(items, shuffled))


def _chains(rows: list[AssignmentRow], waiting: list[int]) -> list[tuple[int, int]]:
    """
    (head, tail) for every waiting participant.

    The tail is the waiting participant; the head is found by walking back
    through existing assignments to somebody nobody has chosen yet. Without
    earlier draws every chain is a single participant.
    """
    chosen_by = {r.recipient_id: r.participant_id for r in rows if r.recipient_id is not None}
    chains = []
    for tail in waiting:
        head = tail
        while head in chosen_by:
            head = chosen_by[head]
        chains.append((head, tail))
    return chains


def plan_derangement(
    rows: Iterable[AssignmentRow],
    rng: random.Random | None = None,
) -> dict[int, int]:
    """
    Giver -> recipient for every participant without a recipient.

    ``rows`` is the full snapshot in a stable order. Participants that
    already have a recipient are left out of the result. Raises
    InsufficientParticipantsError with fewer than two waiting participants.
    """
    rows = list(rows)
    waiting = [r.participant_id for r in rows if r.recipient_id is None]
    if len(waiting) < 2:
        raise InsufficientParticipantsError()

    chains = _chains(rows, waiting)
    plan = {}
    for (_, tail), (next_head, _) in cycle_mapping(chains, rng).items():
        plan[tail] = next_head
    return plan
