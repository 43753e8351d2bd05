from __future__ import annotations

from typing import Iterable, Protocol


class AssignmentRow(Protocol):
    participant_id: int
    recipient_id: int | None


def chosen_recipient_ids(rows: Iterable[AssignmentRow]) -> set[int]:
    return {r.recipient_id for r in rows if r.recipient_id is not None}


def candidate_pool(rows: Iterable[AssignmentRow], drawer_id: int) -> list[int]:
    """
    Participants ``drawer_id`` may still draw, sorted by id.

    A candidate is someone other than the drawer who has not been chosen as
    anybody's recipient and has not drawn a recipient of their own yet.
    """
    rows = list(rows)
    taken = chosen_recipient_ids(rows)
    return sorted(
        r.participant_id
        for r in rows
        if r.participant_id != drawer_id
        and r.recipient_id is None
        and r.participant_id not in taken
    )
